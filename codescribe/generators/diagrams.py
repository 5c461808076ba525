"""Mermaid diagrams built from a project analysis."""

from pathlib import PurePosixPath

from codescribe.parsers.structure import ProjectAnalysis

_FRONTEND_TAGS = ("React", "Vue", "Angular", "Svelte")
_BACKEND_TAGS = ("Express", "Fastify", "Flask", "Django", "FastAPI")
_EXTERNAL_SERVICES = (
    "stripe", "sendgrid", "twilio", "aws-sdk", "firebase", "supabase", "vercel", "netlify",
)
_MAX_EXTERNAL = 5

_STYLES = {
    "frontend": "fill:#e1f5fe,stroke:#01579b,stroke-width:2px",
    "backend": "fill:#f3e5f5,stroke:#4a148c,stroke-width:2px",
    "database": "fill:#e8f5e8,stroke:#1b5e20,stroke-width:2px",
    "external": "fill:#fff3e0,stroke:#e65100,stroke-width:2px",
}


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _label(text: str) -> str:
    return text.replace('"', "'")


def architecture_layers(analysis: ProjectAnalysis) -> dict[str, list[str]]:
    """Group the project's parts into frontend, backend, database and external layers.

    Args:
        analysis: The project analysis.

    Returns:
        Mapping of layer name to node labels, without duplicates.
    """
    frontend = [c.name for c in analysis.components]
    frontend.extend(tag for tag in analysis.frameworks if tag in _FRONTEND_TAGS)

    backend = [
        PurePosixPath(record.relative_path).stem or "API"
        for record in analysis.files
        if record.routes
    ]
    backend.extend(tag for tag in analysis.frameworks if tag in _BACKEND_TAGS)

    external = [
        dep
        for dep in analysis.dependencies
        if any(service in dep for service in _EXTERNAL_SERVICES)
    ][:_MAX_EXTERNAL]

    return {
        "frontend": _unique(frontend),
        "backend": _unique(backend),
        "database": _unique([db.type for db in analysis.databases]),
        "external": external,
    }


def architecture_diagram(analysis: ProjectAnalysis) -> str:
    """Render a Mermaid ``graph TB`` of the project's architecture.

    Every frontend node links to every backend node, and every backend
    node links to every database and external-service node.

    Args:
        analysis: The project analysis.

    Returns:
        Mermaid source text.
    """
    layers = architecture_layers(analysis)
    prefixes = {"frontend": "FE", "backend": "BE", "database": "DB", "external": "EXT"}
    titles = {
        "frontend": "Frontend Layer",
        "backend": "Backend Layer",
        "database": "Database Layer",
        "external": "External Services",
    }

    lines = ["graph TB"]
    for layer, nodes in layers.items():
        lines.append(f'    subgraph "{titles[layer]}"')
        for index, node in enumerate(nodes):
            lines.append(f'        {prefixes[layer]}{index}["{_label(node)}"]')
        lines.append("    end")

    for fe in range(len(layers["frontend"])):
        for be in range(len(layers["backend"])):
            lines.append(f"    FE{fe} --> BE{be}")
    for be in range(len(layers["backend"])):
        for target in ("database", "external"):
            for index in range(len(layers[target])):
                lines.append(f"    BE{be} --> {prefixes[target]}{index}")

    for layer, style in _STYLES.items():
        lines.append(f"    classDef {layer} {style}")
    for layer, nodes in layers.items():
        for index in range(len(nodes)):
            lines.append(f"    class {prefixes[layer]}{index} {layer}")

    return "\n".join(lines) + "\n"
