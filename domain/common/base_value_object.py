"""值对象基类"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BaseValueObject:
    """
    值对象基类

    值对象不可变，按属性判等。子类在 validate() 中实现校验逻辑，
    构造完成后自动调用。
    """

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """校验值对象（子类按需覆盖）"""
