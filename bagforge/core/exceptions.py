"""
Centralized Exception Hierarchy for bagforge.

This module defines all custom exceptions used throughout bagforge.
All exceptions inherit from BagForgeError for easy catching.

Each exception includes:
- user_message: Human-readable description of what went wrong
- why_it_happened: Explanation of the root cause
- how_to_fix: Actionable steps to resolve the issue
- error_code: Unique identifier for documentation lookup (e.g., "BF-PKG-001")

Usage
-----
    from bagforge.core.exceptions import ArchiveError, PackageError

    try:
        packer.unpack(context, archive)
    except ArchiveError as e:
        logger.error(f"Restore failed: {e}")
        cause = e.get_root_cause()

Exception Hierarchy
-------------------
    BagForgeError (base)
    ├── ConfigurationError
    ├── UnsupportedOperationError
    ├── PackageError
    │   ├── SchemaDriftError
    │   ├── TranslationError
    │   ├── UnresolvablePrincipalError
    │   └── UnmappedActionError
    └── ArchiveError
        ├── MissingArchiveError
        └── BagStructureError

Propagation
-----------
PackageError subclasses describe why a single policy entry or record could
not be converted. The packers surface them to their callers as ArchiveError,
chained with ``raise ... from``, so one except clause catches every fatal
pack/unpack failure while the original cause stays reachable.
"""

from typing import Any, List, Optional
import builtins
import re


def sanitize_path(path: str) -> str:
    """Sanitize a file path to avoid leaking sensitive info.

    Args:
        path: Original file path

    Returns:
        Sanitized path with user home directories replaced
    """
    if not path:
        return path

    patterns = [
        # Windows user paths: C:\Users\username -> <user-home>
        (r"[A-Za-z]:\\Users\\[^\\]+", r"<user-home>"),
        # Unix/Mac home paths: /home/username or /Users/username -> <user-home>
        (r"/(?:home|Users)/[^/]+", r"<user-home>"),
        (r"\$[A-Z_]+", r"<env>"),
    ]

    result = path
    for pattern, replacement in patterns:
        result = re.sub(pattern, replacement, result)

    return result


def sanitize_message(message: str) -> str:
    """Sanitize an error message to avoid leaking sensitive info.

    Masks credentials embedded in URLs and user home directories.

    Args:
        message: Original error message

    Returns:
        Sanitized message
    """
    if not message:
        return message

    result = message

    patterns = [
        # Basic auth
        (r"://[^:/\s]+:[^@/\s]+@", r"://<user>:<pass>@"),
        (r"(password|passwd|secret)[=:]\s*[^\s]+", r"\1=<hidden>"),
        (r"[A-Za-z]:\\Users\\[^\s\"']+", lambda m: sanitize_path(m.group(0))),
        (r"/(?:home|Users)/[^\s\"']+", lambda m: sanitize_path(m.group(0))),
    ]

    for pattern, replacement in patterns:
        if callable(replacement):
            result = re.sub(pattern, replacement, result)
        else:
            result = re.sub(pattern, str(replacement), result)

    return result


def get_root_cause(exc: BaseException) -> BaseException:
    """Extract the root cause from a chain of exceptions.

    Follows nested __cause__ and __context__ attributes to find
    the original error that started the chain.

    Args:
        exc: Exception to analyze

    Returns:
        Root cause exception (may be the same as input)
    """
    seen = set()
    current = exc

    while current is not None:
        if id(current) in seen:
            break
        seen.add(id(current))

        # Prefer explicit cause over implicit context
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__context__ is not None:
            current = current.__context__
        else:
            break

    return current


class BagForgeError(Exception):
    """
    Base exception for all bagforge errors.

    Includes helpful error information:
    - error_code: Unique code for documentation lookup (e.g., "BF-ERR-001")
    - why_it_happened: Explanation of the root cause
    - how_to_fix: List of actionable suggestions

    Example
    -------
        try:
            packer.pack(context, pack_dir)
        except BagForgeError as e:
            logger.error(f"Pack failed: {e}")
            print(f"Fix: {e.how_to_fix}")
    """

    error_code: str = "BF-ERR-000"
    why_it_happened: str = "An unexpected error occurred"
    how_to_fix: List[str] = ["Check the error message for details"]

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        why_it_happened: Optional[str] = None,
        how_to_fix: Optional[List[str]] = None,
    ) -> None:
        """Initialize BagForgeError with helpful information.

        Args:
            message: Human-readable error message
            error_code: Unique identifier (e.g., "BF-PKG-001")
            why_it_happened: Explanation of root cause
            how_to_fix: List of actionable fix suggestions
        """
        super().__init__(sanitize_message(message))

        if error_code is not None:
            self.error_code = error_code
        if why_it_happened is not None:
            self.why_it_happened = why_it_happened
        if how_to_fix is not None:
            self.how_to_fix = how_to_fix

    @property
    def user_message(self) -> str:
        """Get the user-friendly error message."""
        return str(self)

    def get_root_cause(self) -> BaseException:
        """Get the root cause of this exception chain."""
        return get_root_cause(self)


class ConfigurationError(BagForgeError):
    """
    Raised when configuration is invalid or cannot be loaded.

    Attributes
    ----------
    field : str
        The configuration field that failed validation
    value : any
        The invalid value
    """

    error_code = "BF-CFG-000"
    why_it_happened = (
        "A configuration value is invalid. "
        "The bagforge.yaml file may have incorrect settings"
    )
    how_to_fix = [
        "Check bagforge.yaml for syntax errors",
        "Verify the value type matches what's expected",
        "Unset BAGFORGE_* environment variables that override the file",
    ]

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


class UnsupportedOperationError(BagForgeError):
    """
    Raised when a packer is asked for something it cannot honour.

    Silently ignoring such a request would produce an archive with different
    content than the caller asked for, so these requests fail immediately.
    """

    error_code = "BF-OP-001"
    why_it_happened = "The requested packer operation is not supported"
    how_to_fix = [
        "Remove the unsupported option from the request",
        "Pack the object without a reference filter",
    ]


# ============================================================================
# Policy Conversion Exceptions
# ============================================================================


class PackageError(BagForgeError):
    """
    Base exception for failures while converting policies.

    Raised by the policy codec. Packers wrap it into an ArchiveError before
    it reaches their callers.
    """

    error_code = "BF-PKG-000"
    why_it_happened = "A resource policy could not be converted"
    how_to_fix = ["Check the policy document and the repository principals"]


class SchemaDriftError(PackageError):
    """
    Raised when a policy carries an action code with no symbolic name.

    A policy document with an unresolvable action cannot be round-tripped,
    so this aborts the whole pack.
    """

    error_code = "BF-PKG-001"
    why_it_happened = (
        "A resource policy uses an action code that has no symbolic export "
        "name. The persistence schema and the action table are out of sync"
    )
    how_to_fix = [
        "Check the action codes stored for the object's policies",
        "Remove or fix policies using workflow-only action codes",
    ]

    def __init__(self, code: Any, **kwargs: Any) -> None:
        super().__init__(f"No symbolic name for action code {code!r}", **kwargs)
        self.code = code


class TranslationError(PackageError):
    """Raised when a group name cannot be translated for export or import."""

    error_code = "BF-PKG-002"
    why_it_happened = (
        "The group name refers to a repository object that could not be "
        "found, or that has no persistent identifier"
    )
    how_to_fix = [
        "Restore the referenced community or collection before this one",
        "Check that the referenced object has a handle assigned",
    ]


class UnresolvablePrincipalError(PackageError):
    """
    Raised when a policy's principal does not exist in the repository.

    Covers a missing Administrator or Anonymous group as well as unknown
    managed groups and e-people.
    """

    error_code = "BF-PKG-003"
    why_it_happened = (
        "A policy in the archive names a group or e-person that does not "
        "exist in this repository"
    )
    how_to_fix = [
        "Create the missing group or e-person before restoring",
        "Restore the groups and e-people of the source repository first",
    ]


class UnmappedActionError(PackageError):
    """Raised on strict restore when an entry names an unknown action."""

    error_code = "BF-PKG-004"
    why_it_happened = (
        "A policy entry in the archive names an action that this repository "
        "does not know"
    )
    how_to_fix = [
        "Fix the rp-action attribute in policy.xml",
        "Set policy.strict_actions to false to restore such entries "
        "without an action",
    ]

    def __init__(self, name: Optional[str], **kwargs: Any) -> None:
        super().__init__(f"Unknown policy action {name!r}", **kwargs)
        self.name = name


# ============================================================================
# Archive Exceptions
# ============================================================================


class ArchiveError(BagForgeError):
    """
    Raised when packing or restoring an archive fails.

    This is the single failure type callers of a packer need to handle;
    policy conversion failures arrive here with their original cause chained.
    """

    error_code = "BF-ARC-000"
    why_it_happened = "The archive could not be written or restored"
    how_to_fix = [
        "Check the error message and its cause for details",
        "Verify there is enough disk space in the output directory",
    ]


class MissingArchiveError(ArchiveError):
    """Raised when the archive to restore does not exist."""

    error_code = "BF-ARC-001"
    why_it_happened = "The archive file to restore from could not be found"
    how_to_fix = [
        "Check the archive path",
        "Pack the object first if no archive exists yet",
    ]


class BagStructureError(ArchiveError):
    """
    Raised when an archive fails structural validation.

    This can occur when:
    - bagit.txt is missing or declares no version
    - object.properties or metadata.xml is missing
    - The archive is corrupt or in an unknown format
    """

    error_code = "BF-ARC-002"
    why_it_happened = (
        "The archive is not a valid bag. Required tag or payload files are "
        "missing, or the file is corrupt"
    )
    how_to_fix = [
        "Re-create the archive with 'bagforge pack'",
        "Check that the file was fully transferred",
    ]


# Mapping from standard exceptions to helpful error info
STANDARD_ERROR_INFO: dict[type, dict[str, Any]] = {
    builtins.FileNotFoundError: {
        "error_code": "BF-FILE-001",
        "why_it_happened": "The specified file or directory could not be found",
        "how_to_fix": [
            "Check that the file path is correct",
            "Ensure you have read permissions for the file",
        ],
    },
    builtins.PermissionError: {
        "error_code": "BF-FILE-002",
        "why_it_happened": "You don't have permission to access this file or directory",
        "how_to_fix": [
            "Check file permissions: ls -la <file>",
            "Ensure you own the file or have read/write access",
        ],
    },
    OSError: {
        "error_code": "BF-SYS-001",
        "why_it_happened": "A system-level error occurred",
        "how_to_fix": [
            "Check disk space and permissions",
            "Review system logs for more details",
        ],
    },
}


def get_error_info(exc: BaseException) -> dict[str, Any]:
    """Get helpful error information for any exception.

    Args:
        exc: Exception to get info for

    Returns:
        Dict with error_code, why_it_happened, how_to_fix
    """
    if isinstance(exc, BagForgeError):
        return {
            "error_code": exc.error_code,
            "why_it_happened": exc.why_it_happened,
            "how_to_fix": exc.how_to_fix,
        }

    for parent_type, info in STANDARD_ERROR_INFO.items():
        if isinstance(exc, parent_type):
            return info

    return {
        "error_code": "BF-ERR-999",
        "why_it_happened": "An unexpected error occurred",
        "how_to_fix": [
            "Check the error message for details",
            "Run again with --verbose for a full log",
        ],
    }
