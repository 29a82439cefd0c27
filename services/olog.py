'''
Web service endpoints for logbooks, tags and log entries.
The public methods here are Flask blueprint endpoints.
We get the arguments from Flask; call into the dal and then send JSON responses.
Change events are published into Kafka here.
Writes need an authenticated principal; this is established by the fronting web server (REMOTE_USER) or HTTP basic auth.
'''

import logging
from functools import wraps

import pydantic
from flask import Blueprint, request, Response, send_file, abort, g

import context
from dal.exceptions import TimeParseError, ReferenceValidationError, NotFoundError, ConflictError, UnavailableError
from dal.models import Logbook, Tag, Log, State, KafkaEvent
from dal.utils import JSONEncoder

olog_blueprint = Blueprint('olog_api', __name__)

logger = logging.getLogger(__name__)


def addHeaders(resp):
    # We don't send html with this blueprint; so we use that as a default.
    if 'Content-Type' not in resp.headers or resp.headers['Content-Type'].startswith('text/html'):
        resp.headers['Content-Type'] = 'application/json; charset=utf-8'
    return resp

olog_blueprint.after_request(addHeaders)


def success(value):
    return JSONEncoder().encode({"success": True, "value": value})

def logAndAbort(error_msg, ret_status=500):
    logger.error(error_msg)
    return Response(JSONEncoder().encode({"success": False, "errormsg": error_msg}), status=ret_status)

@olog_blueprint.errorhandler(TimeParseError)
@olog_blueprint.errorhandler(ReferenceValidationError)
def client_error(e):
    return logAndAbort(str(e), 400)

@olog_blueprint.errorhandler(pydantic.ValidationError)
def invalid_document(e):
    return logAndAbort("Invalid document: " + str(e), 400)

@olog_blueprint.errorhandler(NotFoundError)
def not_found(e):
    return logAndAbort(str(e), 404)

@olog_blueprint.errorhandler(ConflictError)
def conflict(e):
    return logAndAbort(str(e), 409)

@olog_blueprint.errorhandler(UnavailableError)
def unavailable(e):
    return logAndAbort(str(e), 503)


def authenticated(wrapped_function):
    """
    Decorator to make sure we have an authenticated principal; this is available as g.principal.
    """
    @wraps(wrapped_function)
    def function_interceptor(*args, **kwargs):
        principal = request.environ.get("REMOTE_USER", None)
        if not principal and request.authorization:
            principal = request.authorization.username
        if not principal:
            logger.error("Rejecting unauthenticated request to %s", request.path)
            abort(401)
            return None
        g.principal = principal
        return wrapped_function(*args, **kwargs)

    return function_interceptor


def publish(topic, crud, value):
    if context.kafka_producer:
        kmsg = KafkaEvent(collection=topic, crud=crud, value=value.model_dump(mode="json"))
        logger.debug("Publishing onto topic %s - %s", topic, kmsg)
        context.kafka_producer.send(topic, kmsg.model_dump(by_alias=True))


def __registry_for(kind):
    return {"logbooks": context.logbooks, "tags": context.tags}[kind]


@olog_blueprint.route("/olog/ws/<any(logbooks, tags):kind>", methods=["GET"])
def svc_list(kind):
    """
    All logbooks (or tags), including the inactive ones.
    """
    return success(__registry_for(kind).list())

@olog_blueprint.route("/olog/ws/<any(logbooks, tags):kind>/active", methods=["GET"])
def svc_list_active(kind):
    return success(__registry_for(kind).list_active())

@olog_blueprint.route("/olog/ws/<any(logbooks, tags):kind>/<name>", methods=["GET"])
def svc_find(kind, name):
    return success(__registry_for(kind).find(name))

@olog_blueprint.route("/olog/ws/<any(logbooks, tags):kind>/<name>", methods=["PUT"])
@authenticated
def svc_create(kind, name):
    """
    Create a logbook (or tag). The JSON body is optional; the owner defaults to the current user.
    """
    info = request.get_json(silent=True) or {}
    if not isinstance(info, dict):
        return logAndAbort("The body for %s %s has to be a JSON object" % (kind, name), 400)
    if info.get("name", name) != name:
        return logAndAbort("The name in the document %s does not match the name %s in the URL" % (info["name"], name), 400)
    model = Logbook if kind == "logbooks" else Tag
    entity = model(name=name, owner=info.get("owner", None) or g.principal, state=State.Active)
    created = __registry_for(kind).create(entity)
    publish(kind, "Create", created)
    return success(created)

@olog_blueprint.route("/olog/ws/<any(logbooks, tags):kind>/<name>", methods=["DELETE"])
@authenticated
def svc_delete(kind, name):
    """
    Mark the logbook (or tag) as inactive. Deleting an inactive one is not an error.
    """
    deleted = __registry_for(kind).delete(name)
    publish(kind, "Update", deleted)
    return success(deleted)


@olog_blueprint.route("/olog/ws/logs", methods=["GET"])
def svc_find_logs():
    """
    Search for log entries. All query parameters are passed on; start and end accept
    relative expressions like "12 hours" or "2 days" as well as "2021-01-20 12:00:00.123".
    """
    params = request.args.to_dict(flat=False)
    return success(context.log_service.find_logs(params))

@olog_blueprint.route("/olog/ws/logs/<log_id>", methods=["GET"])
def svc_get_log(log_id):
    return success(context.log_service.get_log(log_id))

@olog_blueprint.route("/olog/ws/logs", methods=["PUT"])
@authenticated
def svc_create_log():
    """
    Create a new log entry. The JSON for the entry is sent as the body.
    The markup query parameter selects the preprocessor; none (the default) or commonmark.
    """
    log = Log.model_validate(request.get_json(force=True))
    created = context.log_service.create_log(log, g.principal, request.args.get("markup", "none"))
    publish("logs", "Create", created)
    return success(created)


def __check_upload_size():
    if request.content_length and request.content_length > context.MAX_ATTACHMENT_SIZE:
        logger.error("Rejecting upload of %s bytes; the maximum is %s", request.content_length, context.MAX_ATTACHMENT_SIZE)
        abort(413)

@olog_blueprint.route("/olog/ws/logs/attachments/<log_id>", methods=["POST"])
@authenticated
def svc_upload_attachment(log_id):
    """
    Add an attachment to a log entry. Multi part form with these parts
    file - the file
    filename - optional; defaults to the name of the uploaded file
    id - optional; the id of the attachment
    fileMetadataDescription - optional; defaults to the content type of the uploaded file
    """
    __check_upload_size()
    upload = request.files.get("file", None)
    if not upload:
        return logAndAbort("Please upload a file for log entry %s" % log_id, 400)
    updated = context.log_service.upload_attachment(log_id, upload, request.form.get("filename", None),
        request.form.get("id", None), request.form.get("fileMetadataDescription", None))
    publish("logs", "Update", updated)
    return success(updated)

@olog_blueprint.route("/olog/ws/logs/attachments-multi/<log_id>", methods=["POST"])
@authenticated
def svc_upload_attachments(log_id):
    """
    Add many attachments to a log entry in one request; each file part is named file.
    """
    __check_upload_size()
    uploads = [x for x in request.files.getlist("file") if x.filename]
    updated = context.log_service.upload_attachments(log_id, uploads)
    publish("logs", "Update", updated)
    return success(updated)

@olog_blueprint.route("/olog/ws/logs/attachments/<log_id>/<filename>", methods=["GET"])
def svc_get_attachment(log_id, filename):
    """
    Return the attachment with the specified name.
    If the log entry has no attachment or more than one attachment with this name, we return an empty response.
    """
    found = context.log_service.get_attachment(log_id, filename)
    if not found:
        return Response(status=204)
    attachment, contents, media_type = found
    return send_file(contents, mimetype=media_type, as_attachment=True, download_name=attachment.filename)
