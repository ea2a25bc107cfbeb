"""LangGraph construction for a single user turn.

入口按「是否回退 / 当前阶段」路由到对应节点；类型专家锁定需求后，
同一轮内依次经过 critic 与 host_present 节点。节点只负责编排，
提示词构建与标记解析都在 AgentSystem 中完成。
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph

from mafc.flows.state import TurnState
from mafc.infrastructure.logging.logger import logger

if TYPE_CHECKING:
    from mafc.agents.agent_system import AgentSystem


def back_node(state: TurnState, system: "AgentSystem") -> TurnState:
    system.go_back()
    state["stage"] = system.current_stage
    return state


def profiler_node(state: TurnState, system: "AgentSystem") -> TurnState:
    system.run_profiler(state["user_input"])
    state["stage"] = system.current_stage
    return state


def specialist_node(state: TurnState, system: "AgentSystem") -> TurnState:
    state["demand_locked"] = system.run_specialist(state["user_input"])
    state["stage"] = system.current_stage
    return state


def critic_node(state: TurnState, system: "AgentSystem") -> TurnState:
    system.run_critic(state["user_input"])
    state["stage"] = system.current_stage
    return state


def host_present_node(state: TurnState, system: "AgentSystem") -> TurnState:
    system.present_recommendations(state["user_input"])
    state["stage"] = system.current_stage
    return state


def host_node(state: TurnState, system: "AgentSystem") -> TurnState:
    system.run_host(state["user_input"])
    state["stage"] = system.current_stage
    return state


def entry_router(state: TurnState) -> str:
    if state.get("backward"):
        return "back"
    return state["stage"].lower()


def specialist_router(state: TurnState) -> str:
    if state.get("demand_locked"):
        logger.info("flow.demand_locked", extra={"extra": {"trace_id": state.get("trace_id")}})
        return "critic"
    return "end"


def build_turn_graph(system: "AgentSystem") -> CompiledStateGraph:
    graph = StateGraph(TurnState)
    graph.add_node("back", lambda s: back_node(s, system))
    graph.add_node("profiler", lambda s: profiler_node(s, system))
    graph.add_node("specialist", lambda s: specialist_node(s, system))
    graph.add_node("critic", lambda s: critic_node(s, system))
    graph.add_node("host_present", lambda s: host_present_node(s, system))
    graph.add_node("host", lambda s: host_node(s, system))
    graph.add_conditional_edges(
        START,
        entry_router,
        {
            "back": "back",
            "profiler": "profiler",
            "specialist": "specialist",
            "critic": "critic",
            "host": "host",
        },
    )
    graph.add_conditional_edges("specialist", specialist_router, {"critic": "critic", "end": END})
    graph.add_edge("critic", "host_present")
    graph.add_edge("back", END)
    graph.add_edge("profiler", END)
    graph.add_edge("host_present", END)
    graph.add_edge("host", END)
    return graph.compile()
