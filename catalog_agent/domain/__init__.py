"""领域层模型与协议。

包含：
- models: 统一的 ChatMessage / ChatRequest / ChatResult 模型。
- items: 商品条目 Item 及 ItemStore 存储抽象。
- conversation: 会话模型（按序保存的轮次）。
- cancellation: 取消信号。
- exceptions: 业务异常类型定义。
"""
