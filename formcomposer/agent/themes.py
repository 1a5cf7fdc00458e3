"""Data themes and the deterministic per-theme value table."""
from enum import Enum
from typing import Optional


class Theme(Enum):
    """Persona themes for generated data. Values are display names."""
    STAR_WARS_HERO = "Star Wars Hero"
    MARVEL_SUPERHERO = "Marvel Superhero"
    HARRY_POTTER_WIZARD = "Harry Potter Wizard"
    THE_OFFICE_EMPLOYEE = "The Office Employee"
    GAME_OF_THRONES_NOBLE = "Game of Thrones Noble"

    @property
    def display_name(self) -> str:
        return self.value


def parse_theme(name: Optional[str]) -> Optional[Theme]:
    """Resolve a theme by enum name or display name, case-insensitively."""
    if not name:
        return None
    key = name.strip()
    for theme in Theme:
        if key.upper() == theme.name or key.lower() == theme.value.lower():
            return theme
    return None


# Keyed by field type; "unknown" covers every type not listed
_THEME_VALUES: dict[Optional[Theme], dict[str, str]] = {
    Theme.STAR_WARS_HERO: {
        "text": "Luke Skywalker",
        "email": "luke.skywalker@rebelalliance.com",
        "date": "1977-05-25",
        "number": "1977",
        "password": "MayTheForceBeWithYou",
        "textarea": "I am a Jedi, like my father before me. The Force will be with you, always.",
        "unknown": "Rebel Alliance",
    },
    Theme.MARVEL_SUPERHERO: {
        "text": "Tony Stark",
        "email": "tony.stark@starkindustries.com",
        "date": "1970-05-29",
        "number": "2008",
        "password": "IAmIronMan2024",
        "textarea": "I am Iron Man. The truth is, I am Iron Man. And the suit and I are one.",
        "unknown": "Avengers",
    },
    Theme.HARRY_POTTER_WIZARD: {
        "text": "Harry Potter",
        "email": "harry.potter@hogwarts.edu",
        "date": "1980-07-31",
        "number": "1997",
        "password": "Expelliarmus123",
        "textarea": "I solemnly swear that I am up to no good. Mischief managed.",
        "unknown": "Gryffindor",
    },
    Theme.THE_OFFICE_EMPLOYEE: {
        "text": "Michael Scott",
        "email": "michael.scott@dundermifflin.com",
        "date": "1965-03-15",
        "number": "2005",
        "password": "ThatsWhatSheSaid!",
        "textarea": (
            "Would I rather be feared or loved? Easy. Both. "
            "I want people to be afraid of how much they love me."
        ),
        "unknown": "Dunder Mifflin",
    },
    Theme.GAME_OF_THRONES_NOBLE: {
        "text": "Jon Snow",
        "email": "jon.snow@winterfell.com",
        "date": "1983-04-23",
        "number": "2011",
        "password": "WinterIsComing2024",
        "textarea": (
            "I am the sword in the darkness. I am the watcher on the walls. "
            "I am the shield that guards the realms of men."
        ),
        "unknown": "House Stark",
    },
    None: {
        "text": "John Doe",
        "email": "user@domain.com",
        "date": "2000-12-31",
        "number": "100",
        "password": "password123",
        "textarea": "Sample text content",
        "unknown": "sample",
    },
}

# Types whose value does not depend on the theme
_SHARED_VALUES: dict[str, str] = {
    "select": "option1",
    "checkbox": "true",
    "radio": "true",
}

_TYPE_ALIASES: dict[str, str] = {"input": "text", "tel": "number"}


def hardcoded_value(theme: Optional[Theme], field_type: Optional[str]) -> str:
    """Look up the fixed value for a theme and field type. Never fails."""
    key = (field_type or "text").strip().lower() or "text"
    if key in _SHARED_VALUES:
        return _SHARED_VALUES[key]

    key = _TYPE_ALIASES.get(key, key)
    values = _THEME_VALUES.get(theme, _THEME_VALUES[None])
    return values.get(key, values["unknown"])
