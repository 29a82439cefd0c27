from dal.attachmentstores.attachmentstore import AttachmentStore
import logging

from bson import ObjectId
from bson.errors import InvalidId
from gridfs import GridFS
from gridfs.errors import NoFile
from pymongo.errors import PyMongoError

from dal.exceptions import NotFoundError, UnavailableError
from dal.models.logs import Attachment

logger = logging.getLogger(__name__)

class GridFSStore(AttachmentStore):
    """
    Stores the blobs in the GridFS buckets of the logbook database; the blob_ref is mongo://<oid>
    """
    def __init__(self, db):
        self.fs = GridFS(db)

    def put(self, filecontents, attachment_id, filename, content_type, description=None):
        try:
            fid = self.fs.put(filecontents, filename=filename, contentType=content_type)
        except PyMongoError as e:
            logger.exception("Exception storing attachment %s", filename)
            raise UnavailableError("Cannot store attachment %s" % filename) from e
        logger.info("Stored attachment %s as %s", filename, fid)
        return Attachment(id=attachment_id, filename=filename, content_type=content_type, description=description, blob_ref="mongo://"+str(fid))

    def get(self, attachment):
        fid = attachment.blob_ref.replace("mongo://", "")
        try:
            return self.fs.get(ObjectId(fid))
        except (NoFile, InvalidId) as e:
            raise NotFoundError("Cannot find the blob %s for attachment %s" % (attachment.blob_ref, attachment.filename)) from e
        except PyMongoError as e:
            logger.exception("Exception fetching attachment %s", attachment.blob_ref)
            raise UnavailableError("Cannot fetch attachment %s" % attachment.filename) from e
