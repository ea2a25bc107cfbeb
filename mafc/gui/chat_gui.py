import threading
import tkinter as tk
from tkinter import messagebox, scrolledtext

from mafc.api.service import ChatApp, api_key_warning
from mafc.domain.exceptions import ValidationError
from mafc.domain.models import SYSTEM_AGENT_NAME


class SettingsDialog:
    def __init__(self, parent, chat_app: ChatApp, on_close):
        self.app = chat_app
        self.on_close = on_close
        self.top = tk.Toplevel(parent)
        self.top.title("设置")
        self.top.transient(parent)
        self.top.protocol("WM_DELETE_WINDOW", self.close)

        tk.Label(self.top, text="Google Gemini API Key").pack(anchor=tk.W, padx=10, pady=(10, 0))
        self.key_var = tk.StringVar(value=chat_app.api_key)
        tk.Entry(self.top, textvariable=self.key_var, show="*", width=48).pack(fill=tk.X, padx=10)
        tk.Label(self.top, text="用于访问 Google Gemini 模型。仅存储在本地。", fg="#666").pack(anchor=tk.W, padx=10)

        tk.Label(self.top, text="模型名称").pack(anchor=tk.W, padx=10, pady=(10, 0))
        self.model_var = tk.StringVar(value=chat_app.model)
        tk.Entry(self.top, textvariable=self.model_var, width=48).pack(fill=tk.X, padx=10)
        tk.Label(self.top, text="输入 Gemini 模型名称 (例如 gemini-2.5-pro, gemini-2.5-flash)", fg="#666").pack(
            anchor=tk.W, padx=10
        )

        self.error_label = tk.Label(self.top, text="", fg="#b91c1c")
        self.error_label.pack(fill=tk.X, padx=10)

        tk.Button(self.top, text="保存更改", command=self.save).pack(fill=tk.X, padx=10, pady=(10, 0))
        row = tk.Frame(self.top)
        row.pack(fill=tk.X, padx=10, pady=10)
        tk.Button(row, text="清空记录", command=self.clear_history).pack(side=tk.LEFT, expand=True, fill=tk.X)
        tk.Button(row, text="重置应用", command=self.reset).pack(side=tk.LEFT, expand=True, fill=tk.X)

    def save(self):
        key = self.key_var.get()
        warning = api_key_warning(key) if key.strip() else None
        if warning and not messagebox.askyesno("确认", warning, parent=self.top):
            return
        try:
            self.app.save_settings(key, self.model_var.get())
        except ValidationError as e:
            self.error_label.config(text=e.message)
            return
        self.close()

    def clear_history(self):
        if messagebox.askyesno("确认", "确定要清空聊天记录吗？API Key 和设置将保留。", parent=self.top):
            self.app.clear_history()
            self.close()

    def reset(self):
        if messagebox.askyesno("确认", "确定吗？这将删除所有对话历史和设置 (重置应用)。", parent=self.top):
            self.app.reset()
            self.close()

    def close(self):
        self.top.destroy()
        self.on_close()


class ChatWindow:
    def __init__(self, root):
        self.root = root
        self.root.title("MAFC 影视推荐")
        self.settings_dialog = None
        self.app = ChatApp(on_change=self.schedule_refresh)

        top = tk.Frame(root)
        top.pack(fill=tk.X)
        tk.Label(top, text="MAFC 多智能体影视推荐").pack(side=tk.LEFT, padx=6)
        tk.Button(top, text="设置", command=self.open_settings).pack(side=tk.RIGHT)

        self.chat = scrolledtext.ScrolledText(root, width=80, height=24, wrap=tk.WORD)
        self.chat.pack(fill=tk.BOTH, expand=True)
        self.chat.tag_config("user", foreground="#1a73e8")
        self.chat.tag_config("agent", foreground="#34a853")
        self.chat.tag_config("system", foreground="#d93025")
        self.chat.tag_config("name", font=("TkDefaultFont", 10, "bold"))

        self.status = tk.Label(root, text="", anchor=tk.W)
        self.status.pack(fill=tk.X)

        bottom = tk.Frame(root)
        bottom.pack(fill=tk.X)
        self.entry = tk.Entry(bottom)
        self.entry.pack(side=tk.LEFT, fill=tk.X, expand=True)
        self.entry.bind("<Return>", lambda _e: self.on_send())
        self.send_btn = tk.Button(bottom, text="发送", command=self.on_send)
        self.send_btn.pack(side=tk.LEFT)

        self.refresh()
        if not self.app.has_api_key:
            self.open_settings()

    def on_send(self):
        text = self.entry.get()
        if not text.strip():
            return
        if not self.app.has_api_key:
            self.open_settings()
            return
        if not self.app.begin_turn():
            return
        self.entry.delete(0, tk.END)
        self.send_btn.config(state=tk.DISABLED)
        threading.Thread(target=self._run_turn, args=(text,), daemon=True).start()

    def _run_turn(self, text):
        if not self.app.send_message(text):
            self.schedule_refresh()

    def open_settings(self):
        if self.settings_dialog is not None:
            return
        self.settings_dialog = SettingsDialog(self.root, self.app, self._settings_closed)

    def _settings_closed(self):
        self.settings_dialog = None
        self.refresh()

    def schedule_refresh(self):
        # 回调可能来自工作线程，统一切回 Tk 主线程
        self.root.after(0, self.refresh)

    def refresh(self):
        self.chat.config(state=tk.NORMAL)
        self.chat.delete("1.0", tk.END)
        for msg in self.app.messages:
            if msg.role == "user":
                name = "我"
            elif msg.role == "system":
                name = SYSTEM_AGENT_NAME
            else:
                name = msg.agent_name or "智能体"
            self.chat.insert(tk.END, f"{name}\n", ("name", msg.role))
            self.chat.insert(tk.END, f"{msg.content}\n\n", msg.role)
        self.chat.config(state=tk.DISABLED)
        self.chat.see(tk.END)

        if self.app.is_typing:
            self.status.config(text=f"{self.app.current_agent or '智能体'} 正在思考...")
            self.send_btn.config(state=tk.DISABLED)
        else:
            self.status.config(text="" if self.app.has_api_key else "请先在设置中配置 API Key")
            self.send_btn.config(state=tk.NORMAL)


def main():
    root = tk.Tk()
    ChatWindow(root)
    root.mainloop()


if __name__ == "__main__":
    main()
