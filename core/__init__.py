"""
varexpr.core

核心求值相关模块：
- 变量定义与求值会话 `variable`
- 表达式规范化、变量解析与错误类型 `expression`
- 对外求值入口 `engine`
- 表达式可用函数注册表 `registry`
- YAML 变量文件解析 `parser`
"""
