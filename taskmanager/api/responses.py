"""
Conversión de resultados de servicio (`Ok`/`Fail`) al envelope HTTP.
"""
from typing import Any, Dict

from taskmanager.api.schemas.common import Page
from taskmanager.core.exceptions import error_reply
from taskmanager.core.pipeline import Reply
from taskmanager.core.result import Fail, Result


def respond(result: Result[Any], message: str, status_code: int = 200) -> Reply:
    """`Ok(Page)` -> `{success, message, data, pagination}`; `Ok(None)` omite `data`."""
    if isinstance(result, Fail):
        return error_reply(result.error)

    value = result.value
    body: Dict[str, Any] = {"success": True, "message": message}
    if isinstance(value, Page):
        body["data"] = value.items
        body["pagination"] = value.pagination()
    elif value is not None:
        body["data"] = value
    return Reply(status_code, body=body)
