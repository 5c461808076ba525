"""Workflow classification engine.

Evaluates every registered archetype detector against a project,
selects exactly one by fixed priority (or falls back to the generic
archetype) and records the reasoning. Workflow generation then asks the
selected detector for user flows and falls back to the generic flows
whenever that step fails.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import anthropic
import jinja2

from codescribe.generators.llm_client import LLMClient
from codescribe.generators.template_manager import TemplateManager
from codescribe.parsers.structure import ProjectAnalysis
from codescribe.workflows.detectors import (
    DetectorReport,
    WorkflowDetector,
    build_detectors,
    modern_web_evidence,
)
from codescribe.workflows.flows import UserFlow, generic_flows

logger = logging.getLogger(__name__)

GENERIC = "generic"

# Applicable detectors are chosen by position in these lists, never by score.
DEFAULT_PRIORITY = ("cli", "webapp", "pages", "api")
MODERN_WEB_PRIORITY = ("webapp", "pages", "cli", "api")

GENERATION_ERRORS = (
    anthropic.APIError,
    AttributeError,
    json.JSONDecodeError,
    KeyError,
    TypeError,
    ValueError,
    jinja2.TemplateError,
)


@dataclass
class ClassificationVerdict:
    """The selected archetype and how it was chosen.

    Attributes:
        candidate_name: Selected detector key, or ``"generic"``.
        reason_trail: Ordered human-readable reasoning.
        evidence: Facts inspected, keyed by detector name.
        reports: Per-detector outcomes in registration order.
    """

    candidate_name: str
    reason_trail: list[str] = field(default_factory=list)
    evidence: dict[str, Any] = field(default_factory=dict)
    reports: list[DetectorReport] = field(default_factory=list)

    @property
    def is_generic(self) -> bool:
        return self.candidate_name == GENERIC

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate_name": self.candidate_name,
            "reason_trail": list(self.reason_trail),
            "evidence": self.evidence,
        }


@dataclass
class WorkflowResult:
    """User flows together with the verdict that produced them."""

    verdict: ClassificationVerdict
    flows: list[UserFlow]
    used_fallback: bool = False


class WorkflowClassifier:
    """Classifies projects and generates their user flows.

    Args:
        detectors: Detectors in registration order. Defaults to CLI,
            API and web app.
        llm: Text generation client, needed only for generation.
        templates: Prompt templates, needed only for generation.
    """

    def __init__(
        self,
        detectors: Optional[Sequence[WorkflowDetector]] = None,
        llm: Optional[LLMClient] = None,
        templates: Optional[TemplateManager] = None,
    ) -> None:
        self.detectors = list(detectors) if detectors is not None else build_detectors()
        self.llm = llm
        self.templates = templates or TemplateManager()

    def classify(self, analysis: ProjectAnalysis) -> ClassificationVerdict:
        """Select one archetype for the project.

        Every detector is evaluated independently. With none applicable
        the verdict is generic. Otherwise the first applicable detector
        in ``DEFAULT_PRIORITY`` wins, except that when both the CLI and
        web app detectors apply and the project has modern web
        framework evidence, ``MODERN_WEB_PRIORITY`` is used instead.

        Args:
            analysis: The project analysis; it is only read.

        Returns:
            The verdict with its reasoning trail.
        """
        verdict = ClassificationVerdict(candidate_name=GENERIC)
        applicable: dict[str, WorkflowDetector] = {}

        for detector in self.detectors:
            report = detector.evaluate(analysis)
            verdict.reports.append(report)
            verdict.evidence[detector.name] = report.evidence
            status = "applicable" if report.can_handle else "not applicable"
            verdict.reason_trail.append(f"{detector.label}: {status}")
            verdict.reason_trail.extend(f"{detector.label}: {reason}" for reason in report.reasons)
            if report.can_handle:
                applicable[detector.name] = detector

        if not applicable:
            verdict.reason_trail.append("No archetype applies, using generic workflows")
        else:
            priority = DEFAULT_PRIORITY
            if "cli" in applicable and "webapp" in applicable:
                web_evidence = modern_web_evidence(analysis)
                verdict.evidence["modern_web_evidence"] = web_evidence
                if web_evidence:
                    priority = MODERN_WEB_PRIORITY
                    verdict.reason_trail.append(
                        "CLI and WebApp both apply with modern web framework evidence "
                        f"({', '.join(web_evidence)}): WebApp takes precedence over CLI"
                    )
            verdict.candidate_name = _first_by_priority(applicable, priority)
            label = applicable[verdict.candidate_name].label
            verdict.reason_trail.append(f"Selected {label} by priority {' > '.join(priority)}")

        for line in verdict.reason_trail:
            logger.debug("Classification of %s: %s", analysis.project_name, line)
        return verdict

    def generate_workflows(
        self,
        analysis: ProjectAnalysis,
        verdict: Optional[ClassificationVerdict] = None,
    ) -> WorkflowResult:
        """Generate user flows with the selected detector.

        Never raises for generation problems: any failure of prompt
        rendering, the model call or reply decoding is logged and the
        generic flows are returned instead.

        Args:
            analysis: The project analysis.
            verdict: A verdict from ``classify``; computed if omitted.

        Returns:
            The flows and the verdict they were generated under.
        """
        verdict = verdict or self.classify(analysis)
        if verdict.is_generic:
            return WorkflowResult(verdict=verdict, flows=generic_flows(analysis))

        detector = next((d for d in self.detectors if d.name == verdict.candidate_name), None)
        if detector is None:
            logger.error(
                "No %s detector registered, using generic workflows", verdict.candidate_name
            )
            return WorkflowResult(
                verdict=verdict, flows=generic_flows(analysis), used_fallback=True
            )

        try:
            if self.llm is None:
                raise ValueError("No text generation client configured")
            prompt = detector.build_prompt(analysis, self.templates)
            flows = detector.parse_response(self.llm.complete(prompt))
        except GENERATION_ERRORS as e:
            logger.error(
                "Generating %s workflows failed, using generic workflows: %s", detector.label, e
            )
            return WorkflowResult(
                verdict=verdict, flows=generic_flows(analysis), used_fallback=True
            )

        logger.info("Generated %d %s workflows", len(flows), detector.label)
        return WorkflowResult(verdict=verdict, flows=flows)


def classify(
    analysis: ProjectAnalysis, detectors: Optional[Sequence[WorkflowDetector]] = None
) -> ClassificationVerdict:
    """Classify a project with the given (or default) detectors."""
    return WorkflowClassifier(detectors).classify(analysis)


def _first_by_priority(applicable: dict[str, WorkflowDetector], priority: Sequence[str]) -> str:
    for name in priority:
        if name in applicable:
            return name
    # Detectors outside the priority lists rank last, in registration order.
    return next(iter(applicable))
