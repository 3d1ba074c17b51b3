"""Setting CRUD commands, handler and the default-settings seeder."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, String, Text
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.pricing.setting import DEFAULT_SETTINGS, SettingType, SystemSetting

logger = structlog.get_logger(__name__)


@delivery.command(part_of="SystemSetting")
class CreateSetting:
    key = String(required=True, max_length=100)
    value = Text(required=True)
    data_type = String(choices=SettingType, default=SettingType.STRING.value)
    category = String(max_length=50, default="general")
    description = String(max_length=500)
    is_editable = Boolean(default=True)
    updated_by = String(max_length=100)


@delivery.command(part_of="SystemSetting")
class UpdateSetting:
    key = String(required=True, max_length=100)
    value = Text(required=True)
    description = String(max_length=500)
    updated_by = String(max_length=100)


@delivery.command(part_of="SystemSetting")
class DeleteSetting:
    key = String(required=True, max_length=100)
    deleted_by = String(max_length=100)


def _exists(repo, key) -> bool:
    try:
        repo.get(key)
    except ObjectNotFoundError:
        return False
    return True


@delivery.command_handler(part_of=SystemSetting)
class SettingCommandHandler:
    @handle(CreateSetting)
    def create_setting(self, command):
        repo = current_domain.repository_for(SystemSetting)
        if _exists(repo, command.key):
            raise ValidationError({"key": [f"Setting '{command.key}' already exists"]})

        setting = SystemSetting.create(
            key=command.key,
            value=command.value,
            data_type=command.data_type,
            category=command.category,
            description=command.description,
            is_editable=command.is_editable,
            updated_by=command.updated_by,
        )
        repo.add(setting)
        return setting.key

    @handle(UpdateSetting)
    def update_setting(self, command):
        repo = current_domain.repository_for(SystemSetting)
        setting = repo.get(command.key)
        setting.change_value(command.value, updated_by=command.updated_by, description=command.description)
        repo.add(setting)

    @handle(DeleteSetting)
    def delete_setting(self, command):
        repo = current_domain.repository_for(SystemSetting)
        setting = repo.get(command.key)
        setting.mark_deleted(deleted_by=command.deleted_by)
        repo._dao.delete(setting)


def seed_default_settings() -> list[str]:
    """Create any missing default settings. Existing rows are left alone."""
    repo = current_domain.repository_for(SystemSetting)
    created = []
    for key, value, data_type, category, description, is_editable in DEFAULT_SETTINGS:
        if _exists(repo, key):
            continue
        current_domain.process(
            CreateSetting(
                key=key,
                value=value,
                data_type=data_type,
                category=category,
                description=description,
                is_editable=is_editable,
                updated_by="seed",
            ),
            asynchronous=False,
        )
        created.append(key)

    logger.info("Default settings seeded", created=len(created))
    return created
