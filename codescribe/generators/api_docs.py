"""Per-endpoint API reference records.

The model is asked for OpenAPI-style entries for every route. Replies
that cannot be decoded are replaced by entries built from the routes
themselves.
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from codescribe.parsers.structure import RouteFact
from codescribe.workflows.flows import strip_code_fences


@dataclass
class ApiParameter:
    name: str
    type: str = "string"
    required: bool = True
    description: str = ""


@dataclass
class ApiResponse:
    status: int
    description: str = ""
    schema: str = ""


@dataclass
class ApiExample:
    title: str
    request: str = ""
    response: str = ""


@dataclass
class ApiEndpointDoc:
    """Reference entry for one endpoint.

    Attributes:
        endpoint: Route path, e.g. ``/users/:id``.
        method: Upper-case HTTP method.
        description: What the endpoint does.
        parameters: Path, query and body parameters.
        responses: Documented status codes.
        examples: Sample requests with their responses.
    """

    endpoint: str
    method: str
    description: str = ""
    parameters: list[ApiParameter] = field(default_factory=list)
    responses: list[ApiResponse] = field(default_factory=list)
    examples: list[ApiExample] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def fallback_api_docs(routes: list[RouteFact]) -> list[ApiEndpointDoc]:
    """Build reference entries from the routes alone.

    Args:
        routes: Route facts in file order.

    Returns:
        One entry per route with its path parameters, a 200 response
        and a basic example.
    """
    return [
        ApiEndpointDoc(
            endpoint=route.path,
            method=route.method,
            description=f"{route.method} endpoint for {route.path}",
            parameters=[
                ApiParameter(name=name, description=f"{name} parameter") for name in route.params
            ],
            responses=[ApiResponse(status=200, description="Success", schema="JSON response")],
            examples=[
                ApiExample(
                    title="Basic Usage",
                    request=route.signature,
                    response='{ "status": "success" }',
                )
            ],
        )
        for route in routes
    ]


def parse_api_docs(response: str) -> list[ApiEndpointDoc]:
    """Decode the model's reference reply.

    Accepts either ``{"apis": [...]}`` or a bare list of entries.

    Raises:
        json.JSONDecodeError: If the reply is not JSON.
        ValueError: If entries are not JSON objects of the expected shape.
        KeyError: If an entry lacks its endpoint or method.
    """
    data = json.loads(strip_code_fences(response))
    if isinstance(data, dict):
        data = data.get("apis")
    entries = _objects(data, "endpoint")

    docs = []
    for entry in entries:
        docs.append(
            ApiEndpointDoc(
                endpoint=_text(entry.get("endpoint") or entry["path"]),
                method=_text(entry["method"]).upper(),
                description=_text(entry.get("description", "")),
                parameters=[
                    ApiParameter(
                        name=_text(item["name"]),
                        type=_text(item.get("type", "string")),
                        required=bool(item.get("required", True)),
                        description=_text(item.get("description", "")),
                    )
                    for item in _objects(entry.get("parameters"), "parameter")
                ],
                responses=[
                    ApiResponse(
                        status=int(item["status"]),
                        description=_text(item.get("description", "")),
                        schema=_text(item.get("schema", "")),
                    )
                    for item in _objects(entry.get("responses"), "response")
                ],
                examples=[
                    ApiExample(
                        title=_text(item.get("title", "Example")),
                        request=_text(item.get("request", "")),
                        response=_text(item.get("response", "")),
                    )
                    for item in _objects(entry.get("examples"), "example")
                ],
            )
        )
    return docs


def _objects(items: Any, what: str) -> list[dict[str, Any]]:
    if items is None:
        return []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise ValueError(f"Expected a list of {what} objects in the reply")
    return items


def _text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if not isinstance(value, (str, int, float)):
        raise ValueError(f"Expected text, got {value!r}")
    return str(value)
