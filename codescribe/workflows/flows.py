"""User flow records produced by workflow generation."""

import re
from dataclasses import asdict, dataclass, field
from typing import Any

from codescribe.parsers.structure import ProjectAnalysis

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")


@dataclass
class UserFlowStep:
    """One step of a user flow.

    Attributes:
        action: What the user does.
        result: What the user observes afterwards.
        component: UI component, CLI or API client involved.
        component_slug: Anchor of the component section.
        event: Triggering event (click, submit, command, ...).
        api_endpoint: Endpoint or command invoked.
        api_slug: Anchor of the endpoint section.
        service_function: Backend function handling the step.
        db_model: Table or model touched, if any.
    """

    action: str
    result: str = ""
    component: str = ""
    component_slug: str = ""
    event: str = ""
    api_endpoint: str = ""
    api_slug: str = ""
    service_function: str = ""
    db_model: str = ""


@dataclass
class UserFlow:
    """A named user journey made of ordered steps."""

    name: str
    slug: str
    description: str = ""
    steps: list[UserFlowStep] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def strip_code_fences(response: str) -> str:
    """Remove a surrounding markdown code fence from a model reply."""
    cleaned = _FENCE_OPEN_RE.sub("", response.strip())
    return _FENCE_CLOSE_RE.sub("", cleaned).strip()


def generic_flows(analysis: ProjectAnalysis) -> list[UserFlow]:
    """Fixed flows used when no archetype applies or generation fails.

    Args:
        analysis: The project analysis.

    Returns:
        The "Getting Started" and "Basic Usage" flows.
    """
    name = analysis.project_name
    start_command = analysis.scripts.get("start") or analysis.scripts.get("dev") or "npm start"
    return [
        UserFlow(
            name="Getting Started",
            slug="getting-started",
            description=f"Introduction to using {name}",
            steps=[
                UserFlowStep(
                    action="Install dependencies",
                    component="Setup",
                    event="install",
                    api_endpoint="npm install",
                    service_function="Package manager",
                    result="Dependencies installed successfully",
                ),
                UserFlowStep(
                    action="Start the application",
                    component="Application",
                    event="start",
                    api_endpoint=start_command,
                    service_function="Application bootstrap",
                    result=f"{name} is running and ready to use",
                ),
            ],
        ),
        UserFlow(
            name="Basic Usage",
            slug="basic-usage",
            description=f"Common workflows when using {name}",
            steps=[
                UserFlowStep(
                    action="Access main functionality",
                    component="Main Interface",
                    event="interaction",
                    api_endpoint="Main entry point",
                    service_function="Core functionality",
                    result="Application responds with expected behavior",
                ),
            ],
        ),
    ]
