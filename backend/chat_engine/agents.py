"""
Agent roster and random assignment.

The roster is fixed. pick_random() takes the random source explicitly so
tests can seed it; consecutive chats may get the same agent.
"""

import random
from typing import Optional, Sequence

from errors import NotFoundError
from .models import AgentProfile


def _avatar(gender: str, n: int) -> str:
    folder = "women" if gender == "female" else "men"
    return f"https://randomuser.me/api/portraits/{folder}/{n}.jpg"


_ROSTER = [
    (1, "Sarah Johnson", "সারাহ জনসন", "female"),
    (2, "Michael Chen", "মাইকেল চেন", "male"),
    (3, "Emily Rodriguez", "এমিলি রদ্রিগেজ", "female"),
    (4, "David Kim", "ডেভিড কিম", "male"),
    (5, "Jessica Williams", "জেসিকা উইলিয়ামস", "female"),
    (6, "James Anderson", "জেমস অ্যান্ডারসন", "male"),
    (7, "Amanda Taylor", "অ্যামান্ডা টেইলর", "female"),
    (8, "Robert Martinez", "রবার্ট মার্টিনেজ", "male"),
    (9, "Sophia Lee", "সোফিয়া লি", "female"),
    (10, "Daniel Brown", "ড্যানিয়েল ব্রাউন", "male"),
    (11, "Olivia Garcia", "অলিভিয়া গার্সিয়া", "female"),
    (12, "William Davis", "উইলিয়াম ডেভিস", "male"),
    (13, "Emma Wilson", "এমা উইলসন", "female"),
    (14, "Alexander Moore", "আলেকজান্ডার মুর", "male"),
    (15, "Isabella Thompson", "ইসাবেলা থম্পসন", "female"),
]

AGENT_PROFILES = tuple(
    AgentProfile(id=agent_id, name=name, name_local=local, avatar=_avatar(gender, agent_id), gender=gender)
    for agent_id, name, local, gender in _ROSTER
)


class AgentPool:
    """Read-only view over a roster of agent profiles."""

    def __init__(self, profiles: Sequence[AgentProfile] = AGENT_PROFILES):
        if not profiles:
            raise ValueError("AgentPool needs at least one profile")
        self._profiles = tuple(profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    @property
    def profiles(self):
        return self._profiles

    def pick_random(self, rng: Optional[random.Random] = None) -> AgentProfile:
        """Uniform pick. No dedup against previous sessions."""
        return (rng or random).choice(self._profiles)

    def get(self, agent_id: int) -> AgentProfile:
        for profile in self._profiles:
            if profile.id == agent_id:
                return profile
        raise NotFoundError("Agent not found", resource_type="agent", resource_id=str(agent_id))
