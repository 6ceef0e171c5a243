from .deps import request_params, workflow_context
from .service import WorkflowContext, extract_public_key, fetch_context, resolve_workflow_context

__all__ = [
    "WorkflowContext",
    "extract_public_key",
    "fetch_context",
    "request_params",
    "resolve_workflow_context",
    "workflow_context",
]
