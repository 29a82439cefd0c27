import logging

from flask import Blueprint, jsonify

import context

pages_blueprint = Blueprint('pages_api', __name__)

logger = logging.getLogger(__name__)

@pages_blueprint.route("/status")
def status():
    """
    Health probe; reports the version of the mongo server we are connected to.
    """
    try:
        return jsonify({"success": True, "mongo_version": context.logbookclient.server_info()['version']})
    except Exception as e:
        logger.exception("Exception contacting the mongo server")
        return jsonify({"success": False, "errormsg": str(e)}), 503
