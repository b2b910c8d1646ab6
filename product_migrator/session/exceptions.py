class SessionContextError(Exception):
    """Base exception for tenant context failures on a primary store session."""


class ContextUnavailableError(SessionContextError):
    """Raised when the tenant has no configuration record, or the session
    rejects the statements that set up its context.
    """


class ContextSwitchError(SessionContextError):
    """Raised when every tenant-switch procedure failed."""

    def __init__(self, tenant_id: int, failures: list[str]) -> None:
        self.tenant_id = tenant_id
        self.failures = failures
        details = "\n- ".join(failures)
        super().__init__(
            f"Failed to switch session to tenant {tenant_id}. Attempts:\n- {details}"
        )


class ContextMismatchError(SessionContextError):
    """Raised when the session reports a tenant other than the requested one."""

    def __init__(self, expected: int, actual: object) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Session tenant mismatch. Expected={expected}, session={actual}"
        )
