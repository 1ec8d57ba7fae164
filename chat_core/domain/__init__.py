"""领域层模型与协议。

包含：
- models: 会话摘要 / 消息 / 补全请求与结果等数据模型。
- conversation: ConversationStore 协议。
- exceptions: 业务异常类型定义。
"""
