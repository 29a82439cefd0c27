'''
The log entry business logic.
Searches translate relative time expressions before handing the parameters to the log store.
New entries are validated against the logbook and tag registries before they are saved.
Attachments are stored in the attachment store first and then added to the catalog on the entry.
'''
import logging

from bson import ObjectId

from dal.exceptions import ReferenceValidationError, UnavailableError
from dal.preprocessors import preprocessor_for
from dal.timeparser import resolve_to_canonical
from dal.utils import utcnow

logger = logging.getLogger(__name__)

TIME_BOUND_KEYS = ["start", "end"]


def rewrite_time_bounds(params, now):
    """
    Return a copy of the search parameters with the start/end values resolved to canonical timestamps.
    Only the first value of a time bound is used. All other parameters are passed through untouched.
    Raises TimeParseError if a time bound cannot be parsed.
    """
    ret = {}
    for key, values in params.items():
        if key.lower() in TIME_BOUND_KEYS and values:
            ret[key] = [resolve_to_canonical(values[0], now)]
        else:
            ret[key] = list(values)
    return ret


class LogService():
    """
    :param logs: The LogStore
    :param logbooks: The logbook Registry
    :param tags: The tag Registry
    :param attachment_store: An AttachmentStore
    :param clock: Returns the current time; tests substitute a fixed clock.
    """
    def __init__(self, logs, logbooks, tags, attachment_store, clock=utcnow):
        self.logs = logs
        self.logbooks = logbooks
        self.tags = tags
        self.attachment_store = attachment_store
        self.clock = clock

    def get_log(self, log_id):
        return self.logs.get(log_id)

    def find_logs(self, params):
        """
        Search for log entries. Supports time expressions like "12 hours" or "2 days" as well as
        formatted strings like "2021-01-20 12:00:00.123" for the start and end parameters.
        Returns an empty list if nothing matches or if the store is unavailable.
        """
        rewritten = rewrite_time_bounds(params, self.clock())
        try:
            return self.logs.search(rewritten)
        except UnavailableError:
            logger.exception("Returning no results for search %s as the store is unavailable", rewritten)
            return []

    def create_log(self, log, owner, markup=None):
        """
        Create a new log entry for the authenticated owner.
        All logbooks and tags referenced by the entry must be known to the registries; inactive ones are acceptable.
        Nothing is saved if the validation fails.
        """
        log = log.model_copy(update={"owner": owner})

        logbook_names = log.logbook_names()
        unknown = logbook_names - self.logbooks.names()
        if unknown:
            logger.error("Log entry from %s references unknown logbooks %s", owner, sorted(unknown))
            raise ReferenceValidationError("One or more invalid logbook name(s) %s" % ", ".join(sorted(unknown)))

        tag_names = log.tag_names()
        if tag_names:
            unknown = tag_names - self.tags.names()
            if unknown:
                logger.error("Log entry from %s references unknown tags %s", owner, sorted(unknown))
                raise ReferenceValidationError("One or more invalid tag name(s) %s" % ", ".join(sorted(unknown)))

        log = preprocessor_for(markup).process(log)
        log = log.model_copy(update={"id": None, "version": 0, "created_at": self.clock(), "modified_at": None, "attachments": []})
        created = self.logs.create(log)
        logger.info("Created log entry %s for %s in logbooks %s", created.id, owner, sorted(logbook_names))
        return created

    def upload_attachment(self, log_id, upload, filename=None, attachment_id=None, description=None):
        """
        Store the uploaded file and add it to the attachments of the log entry.
        :param upload: A werkzeug FileStorage (or anything with a stream, filename and mimetype)
        The filename defaults to the name of the upload and the description to its content type.
        Raises NotFoundError if there is no such log entry and ConflictError if the entry changed while we were uploading.
        """
        log = self.logs.get(log_id)
        filename = filename if filename else upload.filename
        description = description if description else upload.mimetype
        attachment_id = attachment_id if attachment_id else str(ObjectId())
        attachment = self.attachment_store.put(upload.stream, attachment_id, filename, upload.mimetype or None, description)
        logger.info("Adding attachment %s (%s) to log entry %s", filename, attachment.id, log_id)
        updated = log.model_copy(update={"attachments": log.attachments + [attachment], "modified_at": self.clock()})
        return self.logs.update(updated)

    def upload_attachments(self, log_id, uploads):
        """
        Upload many files to the same log entry using each file's own name and content type.
        The entry is fetched once more at the end so that the caller sees all the attachments.
        """
        self.logs.get(log_id)
        for upload in uploads:
            self.upload_attachment(log_id, upload, upload.filename, None, upload.mimetype)
        return self.logs.get(log_id)

    def get_attachment(self, log_id, filename):
        """
        Find the attachment with the specified filename on the log entry.
        Returns a tuple of (attachment, file like contents, media type).
        If no attachment or more than one attachment has this name, we log a warning and return None.
        """
        log = self.logs.get(log_id)
        matching = [x for x in log.attachments if x.filename == filename]
        if len(matching) != 1:
            logger.warning("Found %d attachments named %s for log id %s", len(matching), filename, log_id)
            return None
        attachment = matching[0]
        contents = self.attachment_store.get(attachment)
        return attachment, contents, self.attachment_store.media_type(attachment)
