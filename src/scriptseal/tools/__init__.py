"""External collaborators: the script transformer and document finisher."""

from scriptseal.tools.minifier import (
    DocumentFinisher,
    HtmlMinifierTerser,
    PassthroughFinisher,
)
from scriptseal.tools.npx import run_tool
from scriptseal.tools.obfuscator import JavaScriptObfuscator, ScriptTransformer

__all__ = [
    "DocumentFinisher",
    "HtmlMinifierTerser",
    "JavaScriptObfuscator",
    "PassthroughFinisher",
    "ScriptTransformer",
    "run_tool",
]
