"""
Advisor Profiles
================

Each advisor is a persona: a display name, a one-line description and a
system prompt that sets its voice and focus. All advisors share one
knowledge base but keep separate sessions and memory.

Built-in advisors:

    north       General advisor (the default)
    strategist  Business strategy, planning and decisions
    ops         Process optimization and operational excellence
    content     Content strategy, marketing and communication

Profiles can be overridden or extended with a JSON file (ADVISOR_PROFILES_FILE):

    [
      {
        "advisor_id": "finance",
        "display_name": "Finance Advisor",
        "description": "an advisor focused on budgeting and forecasting",
        "system_prompt": "You are a finance advisor...",
        "triggers": ["@finance", "@budget"]
      }
    ]

Persona detection:
    A message is scanned for each advisor's trigger tokens in registry order
    (built-ins: strategist, ops, content, north; file entries after them).
    The first advisor with any trigger present anywhere in the message wins,
    regardless of where in the text the trigger appears. With no trigger the
    default advisor answers.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

from advisor_bot.errors import ConfigError
from advisor_bot.utils.logger import Logger

logger = Logger("Profiles")


@dataclass(frozen=True)
class AdvisorProfile:
    """
    Read-only persona configuration.

    Attributes:
        advisor_id: Stable key (also the slash command name)
        display_name: How the advisor introduces itself
        description: Short role description used in persona framing
        system_prompt: Base instructions for the LLM
        temperature: Sampling temperature (chat mode)
        max_tokens: Response length limit (chat mode)
        triggers: Mention tokens that select this advisor
    """
    advisor_id: str
    display_name: str
    description: str
    system_prompt: str
    temperature: float = 0.7
    max_tokens: int = 500
    triggers: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: dict) -> "AdvisorProfile":
        """
        Raises:
            ConfigError: If triggers is not a list of strings
        """
        advisor_id = data["advisor_id"].lower()
        triggers = data.get("triggers", [f"@{advisor_id}"])
        if not isinstance(triggers, list) or not all(isinstance(t, str) and t.strip() for t in triggers):
            raise ConfigError(f"Advisor '{advisor_id}': triggers must be a list of non-empty strings")

        return cls(
            advisor_id=advisor_id,
            display_name=data.get("display_name", advisor_id),
            description=data.get("description", "an AI advisor"),
            system_prompt=data.get("system_prompt", "You are a helpful AI advisor."),
            temperature=float(data.get("temperature", 0.7)),
            max_tokens=int(data.get("max_tokens", 500)),
            triggers=tuple(t.strip().lower() for t in triggers),
        )


DEFAULT_PROFILES = (
    AdvisorProfile(
        advisor_id="strategist",
        display_name="Strategic Advisor",
        description="a strategic advisor specializing in business strategy, planning, and decision-making",
        system_prompt=(
            "You are a strategic advisor specializing in business strategy, planning, "
            "and decision-making. Provide strategic insights and actionable recommendations."
        ),
        temperature=0.6,
        max_tokens=600,
        triggers=("@strategist", "@strategy"),
    ),
    AdvisorProfile(
        advisor_id="ops",
        display_name="Operations Advisor",
        description="an operations advisor specializing in process optimization and efficiency",
        system_prompt=(
            "You are an operations advisor specializing in process optimization, efficiency, "
            "and operational excellence. Focus on practical, implementable solutions."
        ),
        temperature=0.5,
        max_tokens=500,
        triggers=("@ops", "@operations"),
    ),
    AdvisorProfile(
        advisor_id="content",
        display_name="Content Advisor",
        description="a content strategy advisor specializing in content creation, marketing, and communication",
        system_prompt=(
            "You are a content strategy advisor specializing in content creation, marketing, "
            "and communication. Help with content planning and optimization."
        ),
        temperature=0.8,
        max_tokens=600,
        triggers=("@content", "@writing"),
    ),
    AdvisorProfile(
        advisor_id="north",
        display_name="North",
        description="the team's general AI advisor",
        system_prompt=(
            "You are a helpful AI advisor. Use your knowledge to provide accurate "
            "and helpful responses."
        ),
        temperature=0.7,
        max_tokens=500,
        triggers=("@north", "@advisor"),
    ),
)


def load_profiles_file(path: Path) -> list[AdvisorProfile]:
    """
    Read advisor profiles from a JSON file.

    Raises:
        ConfigError: If the file is missing or malformed
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return [AdvisorProfile.from_dict(entry) for entry in data]
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        raise ConfigError(f"Invalid advisor profiles file {path}: {e}") from e


class AdvisorRegistry:
    """
    Looks up advisor profiles and detects which advisor a message addresses.

    Example:
        registry = AdvisorRegistry()

        registry.get_profile("ops").display_name      # "Operations Advisor"
        registry.get_profile("unknown")               # None
        registry.detect_advisor("hey @ops, thoughts?")  # "ops"
        registry.detect_advisor("hello")              # "north"
    """

    def __init__(
        self,
        profiles: list[AdvisorProfile] | tuple[AdvisorProfile, ...] = DEFAULT_PROFILES,
        default_advisor: str = "north"
    ):
        """
        Args:
            profiles: Profiles in detection precedence order
            default_advisor: Advisor used when no trigger matches
        """
        # Insertion order is the detection precedence
        self._profiles: dict[str, AdvisorProfile] = {p.advisor_id: p for p in profiles}
        self.default_advisor = default_advisor

        if default_advisor not in self._profiles:
            logger.warning(f"Default advisor '{default_advisor}' has no profile")

    @classmethod
    def from_file(cls, path: Path | None, default_advisor: str = "north") -> "AdvisorRegistry":
        """
        Built-in profiles, overridden and extended by an optional JSON file.

        File entries with a built-in id replace it in place; new ids are
        appended after the built-ins.
        """
        profiles = {p.advisor_id: p for p in DEFAULT_PROFILES}
        if path is not None:
            for profile in load_profiles_file(path):
                profiles[profile.advisor_id] = profile
            logger.info(f"Loaded advisor profiles from {path}")
        return cls(list(profiles.values()), default_advisor=default_advisor)

    def get_profile(self, advisor_id: str) -> AdvisorProfile | None:
        """Return the advisor's profile, or None for unknown ids."""
        return self._profiles.get(advisor_id)

    def list_advisors(self) -> list[str]:
        """Advisor ids in precedence order."""
        return list(self._profiles)

    def detect_advisor(self, message_text: str) -> str:
        """
        Pick the advisor a message is addressed to.

        Returns:
            The first advisor (in precedence order) with a trigger in the
            message, else the default advisor
        """
        lower_message = message_text.lower()
        for profile in self._profiles.values():
            if any(trigger in lower_message for trigger in profile.triggers):
                return profile.advisor_id
        return self.default_advisor

    def greeting(self, advisor_id: str) -> str:
        """Reply for a mention or command with no question in it."""
        profile = self.get_profile(advisor_id)
        name = profile.display_name if profile else advisor_id
        return f"Hi! I'm {name}, your AI advisor. What would you like to know?"
