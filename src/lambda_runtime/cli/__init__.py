"""`lambda-runtime` 命令行入口。"""
