"""Onboarding answer catalog.

The values are the exact strings the backend stores, so the enums double as
the wire format for ``POST /profile``. Keeping them in the domain layer lets
the CLI prompts and the submission model share one source of truth.
"""

from __future__ import annotations

from enum import Enum


class _Choice(str, Enum):
    @classmethod
    def default(cls) -> "_Choice":
        return next(iter(cls))

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class BusinessType(_Choice):
    FREELANCER = "Freelancer"
    STUDIO = "Studio (2–4)"
    AGENCY = "Agency (5+)"


class PricingModel(_Choice):
    HOURLY = "Hourly"
    FIXED_PROJECT = "Fixed project"
    PRODUCTIZED = "Productized packages"
    MIXED = "Mixed"
    UNCLEAR = "Unclear"


class MonthlyRevenue(_Choice):
    UNDER_2K = "<£2k"
    FROM_2K_TO_5K = "£2k–£5k"
    FROM_5K_TO_10K = "£5k–£10k"
    OVER_10K = "£10k+"


class MainBottleneck(_Choice):
    LOW_PRICING = "Low pricing / constant negotiation"
    WEAK_LEADS = "Weak leads"
    LACK_OF_PROCESSES = "Lack of processes"
    NO_TIME = "No time"
    LOW_CONFIDENCE = "Low confidence selling"


class Goal12Months(_Choice):
    EARN_MORE = "Earn more without more hours"
    FEWER_BETTER_CLIENTS = "Fewer, better clients"
    SCALABLE_SERVICES = "Build scalable services"
    SMALL_TEAM = "Build a small team"
    PREDICTABLE_SYSTEMS = "Clear, predictable systems"

    @classmethod
    def default(cls) -> "Goal12Months":
        return cls.FEWER_BETTER_CLIENTS
