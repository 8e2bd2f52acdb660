from ._tensor import Tensor
from ._tensor_context import Node

__all__ = [Tensor.__name__, Node.__name__]
