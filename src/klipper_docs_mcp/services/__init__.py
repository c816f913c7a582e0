"""Background services wrapped around the search core."""

from .refresh_scheduler import RefreshSchedulerService


__all__ = ["RefreshSchedulerService"]
