from typing import Any, Optional

from rest_framework.response import Response


def ok(data: Any = None, message: Optional[str] = None, status: int = 200) -> Response:
    body: dict[str, Any] = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    return Response(body, status=status)
