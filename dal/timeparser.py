'''
Parse the time expressions used as search bounds.
Users can specify either an absolute time like "2021-01-20 12:00:00.123" or a relative time like "12 hours" or "3 days 4 hours ago".
Relative times are taken to be in the past, relative to now.
'''

import re
import datetime
import logging

import pytz
from dateutil.relativedelta import relativedelta

from dal.exceptions import TimeParseError
from dal.utils import format_instant, to_utc

logger = logging.getLogger(__name__)

ABSOLUTE_FORMATS = [
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
]

# Maps the unit words we accept onto relativedelta keyword arguments.
UNITS = {}
for unit, aliases in {
    "seconds": ["s", "sec", "secs", "second", "seconds"],
    "minutes": ["m", "min", "mins", "minute", "minutes"],
    "hours": ["h", "hr", "hrs", "hour", "hours"],
    "days": ["d", "day", "days"],
    "weeks": ["w", "week", "weeks"],
    "months": ["mon", "mons", "month", "months"],
    "years": ["y", "yr", "yrs", "year", "years"],
}.items():
    for alias in aliases:
        UNITS[alias] = unit
for alias in ["ms", "milli", "millis", "millisecond", "milliseconds"]:
    UNITS[alias] = "milliseconds"

RELATIVE_PAIR = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)")


def parse_absolute(raw):
    '''
    Parse an absolute timestamp; these are taken to be in UTC.
    Returns None if the string is not in one of the accepted formats.
    '''
    for fmt in ABSOLUTE_FORMATS:
        try:
            return pytz.UTC.localize(datetime.datetime.strptime(raw, fmt))
        except ValueError:
            pass
    return None


def parse_relative(raw):
    '''
    Parse a relative time expression like "2 days" or "1 week 3 hours" into a relativedelta.
    Returns None if the string is not a relative expression.
    '''
    text = raw.strip().lower()
    if text.endswith(" ago"):
        text = text[:-4].strip()
    if not text:
        return None
    pos, delta, matched_any = 0, relativedelta(), False
    for m in RELATIVE_PAIR.finditer(text):
        if text[pos:m.start()].strip(" ,"):
            return None
        unit = UNITS.get(m.group(2))
        if not unit:
            return None
        count = float(m.group(1))
        count = int(count) if count.is_integer() else count
        if unit == "milliseconds":
            delta += relativedelta(microseconds=int(count * 1000))
        elif unit in ["months", "years"]:
            if not isinstance(count, int):
                return None
            delta += relativedelta(**{unit: count})
        else:
            delta += relativedelta(**{unit: count})
        pos, matched_any = m.end(), True
    if not matched_any or text[pos:].strip(" ,"):
        return None
    return delta


def resolve(raw, now):
    '''
    Resolve the raw search value into an instant.
    An absolute timestamp is returned as is (regardless of now); a relative expression is subtracted from now.
    Raises TimeParseError for anything else.
    '''
    if raw is None:
        raise TimeParseError("Missing time expression")
    raw = raw.strip()
    if raw.lower() == "now":
        return to_utc(now)
    instant = parse_absolute(raw)
    if instant:
        return instant
    delta = parse_relative(raw)
    if delta is not None:
        try:
            return to_utc(now) - delta
        except (ValueError, OverflowError) as e:
            logger.error("The time expression %s is out of range", raw)
            raise TimeParseError("The time expression '%s' is out of range" % raw) from e
    logger.error("Cannot parse %s as a time expression", raw)
    raise TimeParseError("Cannot parse '%s' as an absolute time or a relative time expression" % raw)


def resolve_to_canonical(raw, now):
    '''
    Resolve the raw search value and format it as the canonical millisecond precision timestamp.
    '''
    return format_instant(resolve(raw, now))
