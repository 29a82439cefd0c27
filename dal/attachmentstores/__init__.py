__all__ = ["attachmentstore", "seaweed", "gridfs"]

from .attachmentstore import AttachmentStore, determine_media_type
from .seaweed import SeaWeedStore
from .gridfs import GridFSStore

def parseAttachmentStoreURL(storeurl, db):
    if storeurl.startswith("http://") or storeurl.startswith("https://"):
        return SeaWeedStore(storeurl)
    elif storeurl.startswith("mongo://"):
        return GridFSStore(db)
    else:
        raise Exception("Cannot initialize attachment store with unknown scheme " + storeurl)
