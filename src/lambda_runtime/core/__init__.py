"""Runtime 核心：错误分类、invocation 数据模型与 poll / execute / report 循环。"""
