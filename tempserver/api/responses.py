from typing import Any

from starlette.responses import JSONResponse

from tempserver.utils.json import dumps


class TempServerJSONResponse(JSONResponse):
    """JSON response rendered with orjson."""

    def render(self, content: Any) -> bytes:
        return dumps(content)
