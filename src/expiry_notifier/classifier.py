"""
Expiry classifier.

Decides which domains fall inside the warning window. Already-expired
domains (zero or fewer days remaining) are a different lifecycle state and
are never part of the expiring set.
"""

import math
from datetime import date, datetime, time
from typing import Iterable, Union

from .models import DomainRecord, ExpiringDomain

SECONDS_PER_DAY = 24 * 60 * 60

AsOf = Union[date, datetime]


def days_until_expiry(expires_on: date, as_of: AsOf) -> int:
    """
    Whole days from ``as_of`` until ``expires_on``, rounded up.

    A ``datetime`` reference point is compared against midnight of the
    expiry date in the same timezone, so partial days count as a full day.
    """
    if isinstance(as_of, datetime):
        expiry = datetime.combine(expires_on, time.min, tzinfo=as_of.tzinfo)
        return math.ceil((expiry - as_of).total_seconds() / SECONDS_PER_DAY)
    return (expires_on - as_of).days


def is_expiring_soon(days_remaining: int, warning_days: int) -> bool:
    return 0 < days_remaining <= warning_days


def classify(
    domains: Iterable[DomainRecord],
    warning_days: int,
    as_of: AsOf,
) -> list[ExpiringDomain]:
    """
    Filter domains down to those expiring within ``warning_days``.

    Args:
        domains: Domain records in any order
        warning_days: Size of the warning window; 0 disables it
        as_of: Reference date or datetime

    Returns:
        Expiring domains in input order
    """
    expiring = []
    for domain in domains:
        remaining = days_until_expiry(domain.expires_on, as_of)
        if is_expiring_soon(remaining, warning_days):
            expiring.append(ExpiringDomain(domain=domain, days_remaining=remaining))
    return expiring
