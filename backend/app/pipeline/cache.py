"""
ProfileBuilder Backend — Cache Policy Negotiator
==================================================

What:  Turns a route's static CachePolicy into a Cache-Control header value.
Who:   Called by the request pipeline for successful GET responses only.
       Error envelopes never carry caching headers.

Examples:
    CachePolicy(300, 600, is_public=True)  → "public, max-age=300, stale-while-revalidate=600"
    CachePolicy(60, 300)                   → "private, max-age=60, stale-while-revalidate=300"
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CachePolicy:
    """
    Attributes:
        max_age_seconds:                 Fresh lifetime
        stale_while_revalidate_seconds:  Extra lifetime served stale while refetching
        is_public:                       Shared caches (CDN) may store it; otherwise private
    """

    max_age_seconds: int = 60
    stale_while_revalidate_seconds: int = 300
    is_public: bool = False

    def __post_init__(self) -> None:
        if self.max_age_seconds < 0 or self.stale_while_revalidate_seconds < 0:
            raise ValueError("cache lifetimes must be >= 0")


def compute_header(policy: CachePolicy) -> str:
    visibility = "public" if policy.is_public else "private"
    return (
        f"{visibility}, max-age={policy.max_age_seconds}, "
        f"stale-while-revalidate={policy.stale_while_revalidate_seconds}"
    )
