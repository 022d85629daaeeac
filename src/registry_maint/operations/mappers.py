"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and CLI command wrappers
to ensure consistent error handling across all Typer commands.
"""
from __future__ import annotations

import typer
from typing import Callable, TypeVar

T = TypeVar('T')

EXIT_CODES = {
    "NotFound": 1,
    "UsageError": 2,
    "ValueError": 2,
    "UnreachableRegistry": 3,
    "TLSTrustError": 4,
    "DigestNotFound": 5,
    "DeleteRejected": 6,
    "FallbackFailed": 7,
    "WorkflowFailed": 7,
    "RegistryAdminError": 8,
}

FALLBACK_EXIT_CODE = 3


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    Exit codes:
    - 0: Success
    - 1: Repository or tag not found (NotFound)
    - 2: Usage or configuration error (UsageError, ValueError)
    - 3: Registry unreachable (UnreachableRegistry) or unknown error
    - 4: Certificate not trusted (TLSTrustError)
    - 5: No digest header on manifest lookup (DigestNotFound)
    - 6: Manifest delete rejected (DeleteRejected)
    - 7: Fallback cleanup failed / a delete workflow ended failed
    - 8: Registry container or garbage collection failure (RegistryAdminError)

    The exception's class hierarchy is searched, so subclasses such as
    RegistryContainerNotFound map through their base class.

    Args:
        exc: Exception to map

    Returns:
        Exit code (1-8, with 3 as fallback for unknown exceptions)
    """
    for cls in type(exc).__mro__:
        if cls.__name__ in EXIT_CODES:
            return EXIT_CODES[cls.__name__]
    return FALLBACK_EXIT_CODE


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function, reports any exception to the operator and
    maps it to an exit code using typer.Exit. This centralizes error handling
    so CLI commands don't need individual try/except blocks.

    Args:
        func: Function to execute

    Returns:
        Function result if successful

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except Exception as e:
        from .printers import print_error
        print_error(e)
        raise typer.Exit(code=exit_code_for(e)) from e
