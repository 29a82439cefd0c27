import atexit
import logging
import os

from pymongo import MongoClient, ReadPreference

from kafka import KafkaProducer

from dal.utils import JSONEncoder
from dal.entity_store import LogStore
from dal.registry import logbook_registry, tag_registry
from dal.attachmentstores import parseAttachmentStoreURL
from dal.olog import LogService

logger = logging.getLogger(__name__)

# Application context.
app = None

MONGODB_HOST=os.environ.get('MONGODB_HOST', "localhost")
MONGODB_PORT=int(os.environ.get('MONGODB_PORT', 27017))
MONGODB_HOSTS=os.environ.get("MONGODB_HOSTS", None)
if not MONGODB_HOSTS:
    MONGODB_HOSTS = MONGODB_HOST + ":" + str(MONGODB_PORT)
MONGODB_URL=os.environ.get("MONGODB_URL", None)
if not MONGODB_URL:
    MONGODB_URL = "mongodb://" + MONGODB_HOSTS + "/admin"

MONGODB_USERNAME=os.environ.get('MONGODB_USERNAME', None)
MONGODB_PASSWORD=os.environ.get('MONGODB_PASSWORD', None)

# Store calls that do not complete within this are treated as the store being unavailable.
MONGODB_SERVER_SELECTION_TIMEOUT_MS=int(os.environ.get("MONGODB_SERVER_SELECTION_TIMEOUT_MS", 5000))

# The database that holds the logbooks, tags and logs collections.
OLOG_DATABASE = os.environ.get("OLOG_DATABASE", "olog")

# mongo:// stores attachments in GridFS in the OLOG_DATABASE; http:// is a SeaweedFS master.
attachmentstoreurl = os.environ.get("ATTACHMENT_STORE_URL", "mongo://")

MAX_ATTACHMENT_SIZE = float(os.environ.get("MAX_ATTACHMENT_SIZE", "6291456"))

# Long lived handles; these are set up by init_app at startup and released by close at shutdown.
logbookclient = None
logbooks = None
tags = None
logs = None
attachment_store = None
log_service = None
kafka_producer = None


def __getKafkaProducer():
    if os.environ.get("SKIP_KAFKA_CONNECTION", False):
        return None
    else:
        return KafkaProducer(bootstrap_servers=os.environ.get("KAFKA_BOOTSTRAP_SERVER", "localhost:9092").split(","), value_serializer=lambda m: JSONEncoder().encode(m).encode('utf-8'))


def init_app(flask_app, client=None, attachmentstore=None, producer=None):
    """
    Create the store handles for the process.
    Tests pass in a mongomock client and an in memory attachment store.
    """
    global app, logbookclient, logbooks, tags, logs, attachment_store, log_service, kafka_producer
    app = flask_app
    if client is None:
        client = MongoClient(host=MONGODB_URL, username=MONGODB_USERNAME, password=MONGODB_PASSWORD, tz_aware=True,
            read_preference=ReadPreference.PRIMARY_PREFERRED, serverSelectionTimeoutMS=MONGODB_SERVER_SELECTION_TIMEOUT_MS)
    logbookclient = client
    db = logbookclient[OLOG_DATABASE]

    logbooks = logbook_registry(db)
    tags = tag_registry(db)
    logs = LogStore(db)
    try:
        logs.ensure_indexes()
    except Exception:
        logger.exception("Exception creating indices on %s; continuing with the existing indices", OLOG_DATABASE)

    attachment_store = attachmentstore if attachmentstore is not None else parseAttachmentStoreURL(attachmentstoreurl, db)
    log_service = LogService(logs, logbooks, tags, attachment_store)
    kafka_producer = producer if producer is not None else __getKafkaProducer()
    logger.info("Initialized the stores against database %s", OLOG_DATABASE)


def close():
    """
    Release the external connections. Failures here are logged and never propagated.
    """
    global logbookclient, kafka_producer
    if kafka_producer is not None:
        try:
            kafka_producer.close()
        except Exception:
            logger.exception("Exception closing the kafka producer")
        kafka_producer = None
    if logbookclient is not None:
        try:
            logbookclient.close()
        except Exception:
            logger.exception("Exception closing the mongo client")
        logbookclient = None


atexit.register(close)
