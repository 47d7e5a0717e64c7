"""领域层公共基础设施：值对象基类、领域事件基类与异常体系"""
