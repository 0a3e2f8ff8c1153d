"""Site settings service: a flat key/value map with typed validation."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.errors import ValidationError
from linkdeck.models.setting import Setting

# key -> (default value, description)
DEFAULT_SETTINGS: dict[str, tuple[str, str]] = {
    "site_name": ("Linkdeck", "Site name"),
    "site_description": ("A curated directory of useful tools", "Site description"),
    "primary_color": ("#007bff", "Primary theme color"),
    "theme": ("light", "Theme (light/dark)"),
    "enable_registration": ("true", "Allow visitors to register accounts"),
    "enable_link_check": ("true", "Periodically check links for availability"),
    "check_interval_hours": ("24", "Hours between link checks"),
    "links_per_page": ("12", "Links shown per page"),
    "enable_analytics": ("true", "Record click analytics"),
}

BOOLEAN_KEYS = frozenset({"enable_registration", "enable_link_check", "enable_analytics"})
POSITIVE_INT_KEYS = frozenset({"check_interval_hours", "links_per_page"})
PUBLIC_KEYS = (
    "site_name",
    "site_description",
    "primary_color",
    "theme",
    "links_per_page",
    "enable_registration",
)


def validate_setting(key: str, value: str) -> str:
    """Normalize a setting value or raise ValidationError."""
    if key not in DEFAULT_SETTINGS:
        raise ValidationError(f"Unknown setting '{key}'")
    value = value.strip()
    if key in BOOLEAN_KEYS:
        lowered = value.lower()
        if lowered not in ("true", "false"):
            raise ValidationError(f"Setting '{key}' must be 'true' or 'false'")
        return lowered
    if key in POSITIVE_INT_KEYS:
        if not value.isdigit() or int(value) < 1:
            raise ValidationError(f"Setting '{key}' must be a positive integer")
        return str(int(value))
    if key == "theme" and value not in ("light", "dark"):
        raise ValidationError("Setting 'theme' must be 'light' or 'dark'")
    return value


async def get_site_settings(session: AsyncSession) -> dict[str, str]:
    """All settings, with defaults filled in for keys never stored."""
    values = {key: default for key, (default, _) in DEFAULT_SETTINGS.items()}
    result = await session.execute(select(Setting))
    for setting in result.scalars().all():
        if setting.key in values:
            values[setting.key] = setting.value
    return values


async def get_public_settings(session: AsyncSession) -> dict[str, str]:
    """The subset of settings anonymous visitors may see."""
    values = await get_site_settings(session)
    return {key: values[key] for key in PUBLIC_KEYS}


async def get_setting(session: AsyncSession, key: str) -> str:
    result = await session.execute(select(Setting.value).where(Setting.key == key))
    value = result.scalar_one_or_none()
    if value is None:
        return DEFAULT_SETTINGS[key][0]
    return value


async def is_enabled(session: AsyncSession, key: str) -> bool:
    """Read a boolean setting."""
    return (await get_setting(session, key)) == "true"


async def update_site_settings(
    session: AsyncSession,
    updates: dict[str, str],
) -> dict[str, str]:
    """Validate every value first, then upsert them all.

    Returns the full settings map after the update.
    """
    validated = {key: validate_setting(key, value) for key, value in updates.items()}

    result = await session.execute(select(Setting).where(Setting.key.in_(validated)))
    existing = {setting.key: setting for setting in result.scalars().all()}
    for key, value in validated.items():
        if key in existing:
            existing[key].value = value
        else:
            session.add(Setting(key=key, value=value, description=DEFAULT_SETTINGS[key][1]))
    await session.flush()
    return await get_site_settings(session)


async def seed_default_settings(session: AsyncSession) -> int:
    """Store defaults for keys that have no row yet.

    Returns the number of settings created.
    """
    result = await session.execute(select(Setting.key))
    present = set(result.scalars().all())
    created = 0
    for key, (value, description) in DEFAULT_SETTINGS.items():
        if key not in present:
            session.add(Setting(key=key, value=value, description=description))
            created += 1
    await session.flush()
    return created
