'''
Versioned document collections on top of mongo.
Each collection holds one pydantic model type; the document key is stored as the mongo _id.
Every document carries a version; an update has to present the version it last read or it is rejected.
'''
import re
import logging

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError, DuplicateKeyError

from dal.exceptions import NotFoundError, ConflictError, UnavailableError, TimeParseError
from dal.models.logs import Log
from dal.utils import to_mongo, parse_canonical

logger = logging.getLogger(__name__)


class EntityStore():
    """
    Generic CRUD over a single mongo collection.
    :param db: A pymongo (or compatible) database handle
    :param collection_name: For example, logbooks
    :param model: The pydantic model class for the documents
    :param key_field: The model attribute holding the document key
    """
    def __init__(self, db, collection_name, model, key_field="name"):
        self.collection_name = collection_name
        self.collection = db[collection_name]
        self.model = model
        self.key_field = key_field

    def _to_document(self, obj):
        doc = to_mongo(obj.model_dump(mode="python"))
        doc["_id"] = doc[self.key_field]
        return doc

    def _from_document(self, doc):
        doc = dict(doc)
        doc.pop("_id", None)
        return self.model.model_validate(doc)

    def get(self, key):
        """
        Get the document with the specified key; raises NotFoundError if there is no such document.
        """
        try:
            doc = self.collection.find_one({"_id": key})
        except PyMongoError as e:
            logger.exception("Exception fetching %s from %s", key, self.collection_name)
            raise UnavailableError("Store unavailable fetching %s from %s" % (key, self.collection_name)) from e
        if not doc:
            raise NotFoundError("Cannot find %s in %s" % (key, self.collection_name))
        return self._from_document(doc)

    def exists(self, key):
        try:
            return self.collection.find_one({"_id": key}, {"_id": 1}) is not None
        except PyMongoError as e:
            logger.exception("Exception checking for %s in %s", key, self.collection_name)
            raise UnavailableError("Store unavailable checking for %s in %s" % (key, self.collection_name)) from e

    def query(self, predicates=None, sort=None, skip=0, limit=0):
        """
        Find documents matching the field predicates.
        The predicates are a mongo filter; a field maps either to a value or to a range like {"$gte": a, "$lte": b}.
        """
        try:
            cursor = self.collection.find(to_mongo(predicates or {}))
            if sort:
                cursor = cursor.sort(sort)
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            return [self._from_document(x) for x in cursor]
        except PyMongoError as e:
            logger.exception("Exception querying %s for %s", self.collection_name, predicates)
            raise UnavailableError("Store unavailable querying %s" % self.collection_name) from e

    def create(self, obj):
        """
        Insert a new document; raises ConflictError if the key is already taken.
        The stored document is read back and returned so that the caller sees the canonical representation.
        """
        obj = obj.model_copy(update={"version": 1})
        doc = self._to_document(obj)
        try:
            self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            logger.error("%s already exists in %s", doc["_id"], self.collection_name)
            raise ConflictError("%s already exists in %s" % (doc["_id"], self.collection_name)) from e
        except PyMongoError as e:
            logger.exception("Exception inserting %s into %s", doc["_id"], self.collection_name)
            raise UnavailableError("Store unavailable inserting into %s" % self.collection_name) from e
        return self.get(doc["_id"])

    def update(self, obj):
        """
        Replace the document with obj.
        The update only applies if the stored version is the version in obj; we then increment the version.
        Raises NotFoundError if the document has vanished and ConflictError if it was modified since it was read.
        """
        key = getattr(obj, self.key_field)
        doc = self._to_document(obj)
        doc["version"] = obj.version + 1
        try:
            updated = self.collection.find_one_and_replace({"_id": key, "version": obj.version}, doc, return_document=ReturnDocument.AFTER)
            if updated:
                return self._from_document(updated)
            current = self.collection.find_one({"_id": key}, {"version": 1})
        except PyMongoError as e:
            logger.exception("Exception updating %s in %s", key, self.collection_name)
            raise UnavailableError("Store unavailable updating %s in %s" % (key, self.collection_name)) from e
        if not current:
            logger.error("%s vanished from %s before it could be updated", key, self.collection_name)
            raise NotFoundError("Cannot find %s in %s" % (key, self.collection_name))
        logger.warning("Version mismatch updating %s in %s; expected %s found %s", key, self.collection_name, obj.version, current.get("version"))
        raise ConflictError("%s in %s was modified concurrently; please retry" % (key, self.collection_name))


class LogStore(EntityStore):
    """
    The logs collection. Log ids are generated by the store so creates cannot collide.
    """
    TEXT_KEYS = ["text", "desc", "description", "body"]
    DEFAULT_SIZE = 100

    def __init__(self, db, collection_name="logs"):
        super(LogStore, self).__init__(db, collection_name, Log, key_field="id")

    def ensure_indexes(self):
        self.collection.create_index([("created_at", DESCENDING)])
        self.collection.create_index([("owner", ASCENDING)])
        self.collection.create_index([("logbooks.name", ASCENDING)])
        self.collection.create_index([("tags.name", ASCENDING)])

    def create(self, obj):
        return super(LogStore, self).create(obj.model_copy(update={"id": str(ObjectId())}))

    def build_search(self, params):
        """
        Translate the search parameters into a mongo filter, sort and paging.
        :param params: A mapping of parameter name to a list of values as from a query string.
        Time bounds (start/end) must already be canonical timestamps.
        """
        predicates, created_at = [], {}
        sort_order, skip, limit = DESCENDING, 0, self.DEFAULT_SIZE
        for key, values in params.items():
            lkey = key.lower()
            values = [v for v in values if v is not None and v != ""]
            if not values:
                continue
            if lkey == "owner":
                predicates.append({"owner": {"$in": _split_csv(values)}})
            elif lkey in ["logbooks", "logbook"]:
                predicates.append({"logbooks.name": {"$in": _split_csv(values)}})
            elif lkey in ["tags", "tag"]:
                predicates.append({"tags.name": {"$in": _split_csv(values)}})
            elif lkey in self.TEXT_KEYS:
                for token in " ".join(values).split():
                    predicates.append({"body": {"$regex": re.escape(token), "$options": "i"}})
            elif lkey == "title":
                predicates.append({"title": {"$regex": re.escape(values[0]), "$options": "i"}})
            elif lkey == "start":
                created_at["$gte"] = _bound(values[0])
            elif lkey == "end":
                created_at["$lte"] = _bound(values[0])
            elif lkey == "sort":
                sort_order = ASCENDING if values[0].lower() in ["asc", "up", "ascending"] else DESCENDING
            elif lkey in ["size", "limit"]:
                limit = _non_negative_int(key, values[0], limit)
            elif lkey == "from":
                skip = _non_negative_int(key, values[0], skip)
            else:
                logger.debug("Ignoring unknown search parameter %s", key)
        if created_at:
            predicates.append({"created_at": created_at})
        query = {"$and": predicates} if predicates else {}
        return query, [("created_at", sort_order), ("_id", sort_order)], skip, limit

    def search(self, params):
        query, sort, skip, limit = self.build_search(params)
        logger.debug("Searching logs using %s", query)
        return self.query(query, sort=sort, skip=skip, limit=limit)


def _split_csv(values):
    return [x.strip() for v in values for x in v.split(",") if x.strip()]


def _bound(value):
    try:
        return parse_canonical(value)
    except ValueError as e:
        raise TimeParseError("Time bound %s is not a canonical timestamp" % value) from e


def _non_negative_int(key, value, default):
    try:
        ret = int(value)
        if ret >= 0:
            return ret
    except ValueError:
        pass
    logger.warning("Ignoring invalid value %s for search parameter %s", value, key)
    return default
