"""领域层模型与协议。

包含：
- models: ChatMessage / Stage / GenerationRequest 模型。
- conversation: 编排器状态 ConversationState 与 KeyValueStore 抽象。
- exceptions: 业务异常类型定义。
"""
