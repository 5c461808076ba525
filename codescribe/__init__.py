"""codescribe.

An LLM-powered documentation generator that analyzes a codebase,
classifies what kind of project it is, and writes Markdown docs
using the Anthropic Claude API.
"""

__version__ = "0.1.0"
