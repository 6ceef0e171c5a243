from .codec import MalformedTokenError, SchemaValidationError, TokenError, decode, encode
from .model import GENERATED_KEYS, INPUT_KEYS, PRIVATE_KEYS, WorkflowState

__all__ = [
    "GENERATED_KEYS",
    "INPUT_KEYS",
    "PRIVATE_KEYS",
    "MalformedTokenError",
    "SchemaValidationError",
    "TokenError",
    "WorkflowState",
    "decode",
    "encode",
]
