"""
Request Compiler module public API.

Exposes compile_request for the job orchestrator.
"""

from shared.logging import get_logger

from .process import CompileResult, check_prompt, compile_request

__all__ = ["compile_request", "check_prompt", "CompileResult"]

logger = get_logger("request_compiler")
