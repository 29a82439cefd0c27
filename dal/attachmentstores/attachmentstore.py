import abc
import mimetypes

DEFAULT_MEDIA_TYPE = "application/octet-stream"


def determine_media_type(filename):
    """
    Infer the media type from the extension of the filename; unrecognized extensions get a generic binary type.
    """
    mtype, _ = mimetypes.guess_type(filename or "", strict=False)
    return mtype if mtype else DEFAULT_MEDIA_TYPE


class AttachmentStore(abc.ABC):
    @abc.abstractmethod
    def put(self, filecontents, attachment_id, filename, content_type, description=None):
        """
        Store the contents of the file like filecontents object.
        Return an Attachment catalog record whose blob_ref the store can later resolve using get.
        """
        pass

    @abc.abstractmethod
    def get(self, attachment):
        """
        Return the contents of the attachment as a file like object suitable for Flask's send_file.
        Raise NotFoundError if the store does not have the blob.
        """
        pass

    def media_type(self, attachment):
        """
        The recorded content type of the attachment; inferred from the filename if none was recorded.
        """
        return attachment.content_type or determine_media_type(attachment.filename)
