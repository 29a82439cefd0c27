'''
Various small utilties.
'''
import json
import math
import enum
import datetime

import pytz
from bson import ObjectId
from pydantic import BaseModel

CANONICAL_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

class JSONEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, ObjectId):
            return str(o)
        elif isinstance(o, float) and not math.isfinite(o):
            return str(o)
        elif isinstance(o, datetime.datetime):
            # Use var d = new Date(str) in JS to deserialize
            return o.isoformat()
        elif isinstance(o, enum.Enum):
            return o.value
        elif isinstance(o, BaseModel):
            return o.model_dump(mode="json")
        return json.JSONEncoder.default(self, o)


def format_instant(instant):
    '''
    Format the instant in the canonical millisecond precision format used at the query boundary, for example 2021-01-20 12:00:00.123
    Naive datetimes are assumed to be in UTC.
    The year is always zero padded to four digits; strftime does not pad years before 1000.
    '''
    instant = to_utc(instant)
    return "%04d-%s" % (instant.year, instant.strftime("%m-%d %H:%M:%S.%f")[:-3])


def parse_canonical(timestr):
    '''
    Inverse of format_instant; returns a UTC timezone aware datetime.
    Raises ValueError if the string is not in the canonical format.
    '''
    return pytz.UTC.localize(datetime.datetime.strptime(timestr, CANONICAL_TIME_FORMAT))


def to_utc(instant):
    if instant.tzinfo is None:
        return pytz.UTC.localize(instant)
    return instant.astimezone(pytz.UTC)


def utcnow():
    '''
    The current time as a UTC timezone aware datetime truncated to millisecond precision, which is what BSON stores.
    '''
    now = datetime.datetime.now(pytz.UTC)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def to_mongo(value):
    '''
    Mongo stores dates as naive UTC. We convert aware datetimes anywhere in the document so that
    comparisons in queries work the same against a tz_aware and a tz naive client.
    Enums are stored as their values.
    '''
    if isinstance(value, datetime.datetime):
        return to_utc(value).replace(tzinfo=None)
    elif isinstance(value, enum.Enum):
        return value.value
    elif isinstance(value, dict):
        return { k: to_mongo(v) for k, v in value.items() }
    elif isinstance(value, list):
        return [ to_mongo(v) for v in value ]
    return value
