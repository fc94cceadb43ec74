"""Exception taxonomy for TextSwitch.

Profile errors are raised to the caller (CLI, editors) so that invalid edits
are rejected.  Pipeline errors describe an expected, frequent outcome against
uncooperative applications and are swallowed by the orchestrator.
"""

from __future__ import annotations


class TextSwitchError(Exception):
    """Base class for all TextSwitch errors."""


# ---------------------------------------------------------------------------
# Profile management
# ---------------------------------------------------------------------------

class ProfileError(TextSwitchError):
    """Invalid operation on the profile store."""


class ProfileNotFound(ProfileError):
    def __init__(self, profile_id: str):
        super().__init__(f"Profile not found: {profile_id!r}")
        self.profile_id = profile_id


class ProfileNotEditable(ProfileError):
    def __init__(self, profile_id: str, name: str = ""):
        label = f"{name!r} ({profile_id})" if name else repr(profile_id)
        super().__init__(f"Profile {label} is built-in; duplicate it to edit")
        self.profile_id = profile_id


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class PipelineError(TextSwitchError):
    """A pipeline invocation could not complete; never fatal."""


class AcquisitionFailed(PipelineError):
    """Every acquisition strategy failed or returned nothing."""

    def __init__(self, reasons: list[str] | None = None):
        self.reasons = list(reasons or [])
        detail = "; ".join(self.reasons) if self.reasons else "no strategy produced text"
        super().__init__(f"Text acquisition failed: {detail}")


class ReplacementFailed(PipelineError):
    """Every replacement strategy failed."""

    def __init__(self, reasons: list[str] | None = None):
        self.reasons = list(reasons or [])
        detail = "; ".join(self.reasons) if self.reasons else "no strategy accepted the text"
        super().__init__(f"Text replacement failed: {detail}")


class TimeoutExceeded(PipelineError):
    """A bounded wait elapsed without the expected state change."""

    def __init__(self, what: str, timeout: float):
        super().__init__(f"Timed out after {timeout:.3f}s waiting for {what}")
        self.what = what
        self.timeout = timeout
