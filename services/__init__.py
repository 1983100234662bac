"""
varexpr.services

面向业务上下文的表达式服务：
- 按 workspace/client/contractor 选择生效变量 `effective`
- 变量来源（内存、YAML 文件） `source`
- 表达式服务入口 `expression_service`
"""
