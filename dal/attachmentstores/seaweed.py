from dal.attachmentstores.attachmentstore import AttachmentStore

import logging
import io
import requests

from dal.exceptions import NotFoundError, UnavailableError
from dal.models.logs import Attachment

logger = logging.getLogger(__name__)


class SeaWeedStore(AttachmentStore):
    """
    Stores the blobs in a SeaweedFS cluster; the blob_ref is the public URL of the volume file.
    """
    def __init__(self, storeurl, timeout=30):
        self.storeurl = storeurl if storeurl.endswith("/") else storeurl + "/"
        self.timeout = timeout

    def put(self, filecontents, attachment_id, filename, content_type, description=None):
        try:
            isloc = requests.post(self.storeurl + "dir/assign", timeout=self.timeout)
            isloc.raise_for_status()
            isloc = isloc.json()
            publicurl = isloc["publicUrl"] if isloc["publicUrl"].startswith("http") else "http://" + isloc["publicUrl"]
            imgurl = publicurl.rstrip("/") + "/" + isloc["fid"]
            logger.info("Posting attachment %s to URL %s", filename, imgurl)
            files = {
                "file": (
                    filename,
                    filecontents,
                    content_type,
                    {"Content-Disposition": "inline; filename=%s" % filename},
                )
            }
            requests.post(imgurl, files=files, timeout=self.timeout).raise_for_status()
        except requests.RequestException as e:
            logger.exception("Exception posting attachment %s to %s", filename, self.storeurl)
            raise UnavailableError("Cannot store attachment %s" % filename) from e
        return Attachment(id=attachment_id, filename=filename, content_type=content_type, description=description, blob_ref=imgurl)

    def get(self, attachment):
        try:
            resp = requests.get(attachment.blob_ref, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            logger.exception("Exception fetching attachment %s", attachment.blob_ref)
            raise UnavailableError("Cannot fetch attachment %s" % attachment.filename) from e
        if resp.status_code == 404:
            raise NotFoundError("Cannot find the blob %s for attachment %s" % (attachment.blob_ref, attachment.filename))
        if not resp:
            raise UnavailableError("Cannot fetch attachment %s; status %s" % (attachment.filename, resp.status_code))
        return io.BytesIO(resp.content)
