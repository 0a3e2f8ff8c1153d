"""Site settings validation and storage."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.errors import ValidationError
from linkdeck.models.setting import Setting
from linkdeck.services import setting_service


@pytest.mark.parametrize(
    ("key", "value", "expected"),
    [
        ("enable_registration", " TRUE ", "true"),
        ("enable_analytics", "False", "false"),
        ("links_per_page", "024", "24"),
        ("theme", "dark", "dark"),
        ("site_name", "  Tools  ", "Tools"),
    ],
)
def test_values_are_normalized(key: str, value: str, expected: str):
    assert setting_service.validate_setting(key, value) == expected


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("enable_registration", "yes"),
        ("links_per_page", "0"),
        ("check_interval_hours", "-3"),
        ("theme", "purple"),
        ("no_such_key", "x"),
    ],
)
def test_invalid_values_rejected(key: str, value: str):
    with pytest.raises(ValidationError):
        setting_service.validate_setting(key, value)


async def test_defaults_without_rows(session: AsyncSession):
    values = await setting_service.get_site_settings(session)

    assert values["site_name"] == "Linkdeck"
    assert await setting_service.is_enabled(session, "enable_registration")


async def test_update_upserts(session: AsyncSession):
    await setting_service.update_site_settings(session, {"site_name": "Tools"})
    values = await setting_service.update_site_settings(
        session,
        {"site_name": "Intranet", "theme": "dark"},
    )

    assert values["site_name"] == "Intranet"
    assert values["theme"] == "dark"
    rows = await session.scalar(select(func.count(Setting.key)))
    assert rows == 2


async def test_update_is_all_or_nothing(session: AsyncSession):
    with pytest.raises(ValidationError):
        await setting_service.update_site_settings(
            session,
            {"site_name": "Intranet", "links_per_page": "many"},
        )

    values = await setting_service.get_site_settings(session)
    assert values["site_name"] == "Linkdeck"


async def test_public_settings_hide_internal_keys(session: AsyncSession):
    values = await setting_service.get_public_settings(session)

    assert "site_name" in values
    assert "enable_link_check" not in values
    assert "check_interval_hours" not in values


async def test_seed_is_idempotent(session: AsyncSession):
    first = await setting_service.seed_default_settings(session)
    second = await setting_service.seed_default_settings(session)

    assert first == len(setting_service.DEFAULT_SETTINGS)
    assert second == 0
