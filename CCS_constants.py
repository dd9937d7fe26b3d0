#Constants for the Character Creation Sheet

from enum import Enum


SNAPSHOT_VERSION = 2
LEGACY_VERSION = 1

TABS_STORAGE_KEY = "cc-sheet-tabs"
EXPORT_FILENAME = "character-sheet.json"

SLIDER_MIN = 0
SLIDER_MAX = 10
SLIDER_DEFAULT = 5
LEGACY_SLIDER_MAX = 100


class GroupName(str, Enum):
    BODY = "body"
    SKILLS = "skills"
    PRIORITIES = "priorities"
    MIND = "mind"
    SOCIAL = "social"

    @property
    def budgets_traits(self) -> bool:
        # mind/social traits are free; everywhere else a checked trait costs a point
        return self not in (GroupName.MIND, GroupName.SOCIAL)


class RelationKind(str, Enum):
    FAMILY = "family"
    FRIENDS = "friends"
    LOVE = "love"
    HATE = "hate"


class NoteTitle(str, Enum):
    PERSONALITY = "Personality"
    HOBBIES = "Hobbies"
    FOOD_RELATED = "Food-Related"
    HABITS = "Habits"
    QUIRKS = "Quirks"
    EXTRAS = "Extras"


class IdentityField(str, Enum):
    NAME = "Name"
    NICKNAME = "Nickname"
    RACE_SPECIES = "Race/Species"
    AGE = "Age"
    GENDER = "Gender"
    BIRTHDAY = "Birthday"
    CLASS_JOB = "Class/Job"
    HEIGHT = "Height"


IDENTITY_DEFAULTS = {
    IdentityField.NAME: "Jane Doe",
    IdentityField.NICKNAME: "Unknown",
    IdentityField.RACE_SPECIES: "Unknown",
    IdentityField.AGE: "XX",
    IdentityField.GENDER: "Unknown",
    IdentityField.BIRTHDAY: "Unknown",
    IdentityField.CLASS_JOB: "Unknown",
    IdentityField.HEIGHT: "XXX cm",
}

# Keys a foreign sheet may use for the character's name
NAME_KEYS = ("Name", "name", "Character Name", "characterName")


# Point caps per allocation group (overridable from data/point_caps.json)
DEFAULT_POINT_CAPS = {
    GroupName.BODY: 20,
    GroupName.SKILLS: 40,
    GroupName.PRIORITIES: 20,
    GroupName.MIND: 20,
    GroupName.SOCIAL: 15,
}


# --- Stat tables: label -> pip count ---

BODY_STATS = [
    ("Strength", 6),
    ("Dexterity", 6),
    ("Health", 6),
    ("Energy", 6),
    ("Beauty", 6),
    ("Style", 6),
]

SKILL_STATS = [
    (label, 4) for label in (
        "Perception", "Communication", "Persuasion", "Mediation", "Literacy",
        "Creativity", "Cooking", "Combat", "Gardening", "Dancing", "Storytelling",
        "Survival", "Stealth", "Tech Savvy", "Street Smarts", "Seduction", "Luck",
        "Artistry", "Music", "History", "Animal Care", "Child Care",
    )
]

PRIORITY_STATS = [
    (label, 4) for label in (
        "Justice", "Truth", "Power", "Fame", "Wealth", "Family",
        "Friends", "Love", "Home", "Health", "Approval",
    )
]

MIND_STATS = [
    (label, 5) for label in (
        "Intelligence", "Happiness", "Spirituality", "Confidence",
        "Humor", "Anxiety", "Patience", "Passion",
    )
]

SOCIAL_STATS = [
    (label, 5) for label in (
        "Charisma", "Empathy", "Generosity", "Wealth", "Aggression", "Libido",
    )
]


# --- Bipolar sliders: (left, right) ---

MIND_SLIDERS = [
    ("Nice", "Mean"),
    ("Brave", "Cowardly"),
    ("Pacifist", "Violent"),
    ("Thoughtful", "Impulsive"),
    ("Agreeable", "Contrary"),
    ("Idealistic", "Pragmatic"),
    ("Frugal", "Big Spender"),
    ("Extrovert", "Introvert"),
    ("Collected", "Wild"),
]

SOCIAL_SLIDERS = [
    ("Honest", "Deceptive"),
    ("Leader", "Follower"),
    ("Polite", "Rude"),
    ("Political", "Indifferent"),
]


# --- Boolean traits ---

MIND_TRAITS = ["Ambitious", "Possessive", "Stubborn", "Jealous", "Decisive", "Perfectionist"]

SOCIAL_TRAITS = ["Cool", "Flirty", "Cute", "Obedient", "Fun", "Forgiving", "Gullible", "Scary"]


GROUP_TABLES = {
    GroupName.BODY: (BODY_STATS, [], []),
    GroupName.SKILLS: (SKILL_STATS, [], []),
    GroupName.PRIORITIES: (PRIORITY_STATS, [], []),
    GroupName.MIND: (MIND_STATS, MIND_SLIDERS, MIND_TRAITS),
    GroupName.SOCIAL: (SOCIAL_STATS, SOCIAL_SLIDERS, SOCIAL_TRAITS),
}


def slider_key(left: str, right: str) -> str:
    return f"{left} / {right}"
