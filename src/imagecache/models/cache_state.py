"""
Cache state models.

A cache key is in exactly one of three states. The index stores them as a
``(log_time, num_fail)`` pair; these models are the typed view the rest of
the application works with.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .enums import CacheStateKind


class Unseen(BaseModel):
    """No index row: the image has never been requested."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[CacheStateKind.UNSEEN] = CacheStateKind.UNSEEN


class Succeeded(BaseModel):
    """The image was fetched successfully at least once."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[CacheStateKind.SUCCEEDED] = CacheStateKind.SUCCEEDED
    last_access: int = Field(..., ge=0, description="Epoch seconds of last success/access")


class Failed(BaseModel):
    """The image failed ``count`` consecutive times."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[CacheStateKind.FAILED] = CacheStateKind.FAILED
    count: int = Field(..., ge=1)
    last_attempt: int = Field(..., ge=0, description="Epoch seconds of the first failure")


CacheState = Annotated[Union[Unseen, Succeeded, Failed], Field(discriminator="kind")]


def state_from_row(log_time: Optional[int], num_fail: Optional[int]) -> Unseen | Succeeded | Failed:
    """Build the typed state from raw index columns.

    Parameters
    ----------
    log_time : int | None
        Stored ``log_time`` column, ``None`` when no row exists.
    num_fail : int | None
        Stored ``num_fail`` column, ``None`` when no row exists.

    Returns
    -------
    Unseen | Succeeded | Failed
        The corresponding state.
    """
    if log_time is None and num_fail is None:
        return Unseen()
    if not num_fail:
        return Succeeded(last_access=log_time or 0)
    return Failed(count=num_fail, last_attempt=log_time or 0)


class FetchResult(BaseModel):
    """Outcome of one fetch/resize attempt."""

    success: bool
    reason: Optional[str] = None
    size_bytes: int = 0


class CacheAccessResult(BaseModel):
    """What the orchestrator did for one access of a source URL."""

    key: str
    state: CacheState
    fetched: bool = False
    fetch_result: Optional[FetchResult] = None

    @property
    def is_hit(self) -> bool:
        """Whether the blob holds a real (non-placeholder) image."""
        return isinstance(self.state, Succeeded)


class CacheIndexStats(BaseModel):
    """Row counts per state in the cache index."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    abandoned: int = 0
    oldest_log_time: Optional[int] = None
    newest_log_time: Optional[int] = None
