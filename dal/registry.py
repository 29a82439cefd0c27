'''
Lifecycle of logbooks and tags.
Both are named entities that are never removed; a delete marks them Inactive.
The same registry class manages both; they live in independent collections.
'''
import logging

from dal.entity_store import EntityStore
from dal.exceptions import UnavailableError, NotFoundError
from dal.models.logbooks import Logbook, Tag, State

logger = logging.getLogger(__name__)


class Registry():
    def __init__(self, store):
        self.store = store

    @property
    def kind(self):
        return self.store.collection_name

    def list(self):
        """
        All the entities, both active and inactive.
        Returns an empty list if the store is unavailable.
        """
        try:
            return self.store.query()
        except UnavailableError:
            logger.exception("Returning an empty list of %s as the store is unavailable", self.kind)
            return []

    def list_active(self):
        """
        Only the entities whose state is Active.
        Returns an empty list if the store is unavailable.
        """
        try:
            return self.store.query({"state": State.Active})
        except UnavailableError:
            logger.exception("Returning an empty list of active %s as the store is unavailable", self.kind)
            return []

    def names(self):
        """
        Names of all known entities (active and inactive).
        Unlike list, this does not mask an unavailable store; it is used to validate writes.
        """
        return {x.name for x in self.store.query()}

    def find(self, name):
        return self.store.get(name)

    def create(self, entity):
        """
        Create the entity; raises ConflictError if the name is already taken.
        The returned entity is the one read back from the store.
        """
        created = self.store.create(entity)
        logger.info("Created %s %s for owner %s", self.kind, created.name, created.owner)
        return created

    def delete(self, name):
        """
        Soft delete; the entity is marked Inactive and the updated entity is returned.
        Deleting an already inactive entity returns it unchanged.
        """
        try:
            current = self.store.get(name)
        except NotFoundError:
            logger.error("%s does not exist in %s and thus cannot be deleted", name, self.kind)
            raise
        if current.state == State.Inactive:
            logger.debug("%s in %s is already inactive", name, self.kind)
            return current
        self.store.update(current.model_copy(update={"state": State.Inactive}))
        logger.info("Marked %s in %s as inactive", name, self.kind)
        return self.store.get(name)


def logbook_registry(db):
    return Registry(EntityStore(db, "logbooks", Logbook))


def tag_registry(db):
    return Registry(EntityStore(db, "tags", Tag))
