"""
Write the OpenAPI document to interfaces/openapi.json.

    python -m joinery.api.generate_openapi [output_dir]

The notification WebSocket is not part of OpenAPI, so it is described in an
`x-websocket-endpoints` extension.
"""
import json
import sys
from pathlib import Path

from joinery.api.main import app
from joinery.api.routes.notifications import NOTIFICATION_EVENTS


def build_schema() -> dict:
    schema = app.openapi()
    schema["x-websocket-endpoints"] = [
        {
            "path": "/ws/notifications",
            "summary": "Stock, materials-to-order and purchase order events",
            "query": ["token"],
            "messages": {"client_to_server": ["ping"], "server_to_client": NOTIFICATION_EVENTS},
        }
    ]
    return schema


def main(output_dir: str = "interfaces") -> Path:
    path = Path(output_dir) / "openapi.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(build_schema(), indent=2))
    return path


if __name__ == "__main__":
    print(main(*sys.argv[1:2]))
