from flask import current_app
from sqlalchemy import select

from pagebuilder.extensions import db
from pagebuilder.models.global_setting import GlobalSetting
from pagebuilder.repositories.base import GlobalSettingsRepository
from pagebuilder.utils.transaction import transactional


class SqlGlobalSettings(GlobalSettingsRepository):

    def _row(self, key):
        return db.session.execute(
            select(GlobalSetting).where(GlobalSetting.key == key)
        ).scalar_one_or_none()

    def get(self, key, default=None):
        row = self._row(key)
        if row is None or row.value is None:
            return default
        return row.value

    def set(self, key, value):
        with transactional(operation="global_setting.set", entity_id=key):
            row = self._row(key)
            if row is None:
                row = GlobalSetting()
                row.key = key
                db.session.add(row)
            row.value = value

        current_app.logger.debug("global_setting.set key=%s", key)

    def all(self):
        rows = db.session.execute(select(GlobalSetting).order_by(GlobalSetting.id)).scalars()
        return {row.key: row.value for row in rows}

    def ensure_schema(self):
        db.create_all()
