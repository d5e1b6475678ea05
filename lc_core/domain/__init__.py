"""领域层模型与协议。

包含：
- models: ChatMessage / ChatCompletionResult 模型。
- codec: 消息与 JSON 对象之间的转换。
- conversation: 会话历史存储的 HistoryStore 抽象。
- exceptions: 业务异常类型定义。
"""
