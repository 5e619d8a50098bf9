from tempserver.core.models.base import merged_options
from tempserver.core.models.exception import ExceptionResponseModel

__all__ = [
    "ExceptionResponseModel",
    "merged_options",
]
