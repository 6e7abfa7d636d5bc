from flask import current_app
from pymongo import ASCENDING

from pagebuilder.repositories.base import GlobalSettingsRepository

KEY_INDEX = "uq_global_settings_key"


class MongoGlobalSettings(GlobalSettingsRepository):

    def __init__(self, database, collection_name="lpb_global_settings"):
        self.collection = database[collection_name]

    def get(self, key, default=None):
        doc = self.collection.find_one({"key": key})
        if doc is None or doc.get("value") is None:
            return default
        return doc["value"]

    def set(self, key, value):
        self.collection.update_one({"key": key}, {"$set": {"value": value}}, upsert=True)
        current_app.logger.debug("global_setting.set key=%s", key)

    def all(self):
        return {
            doc["key"]: doc.get("value")
            for doc in self.collection.find().sort("_id", ASCENDING)
        }

    def ensure_schema(self):
        self.collection.create_index([("key", ASCENDING)], unique=True, name=KEY_INDEX)
