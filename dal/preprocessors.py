'''
Markup preprocessors applied to a log entry before it is saved.
The client picks one with the markup request parameter; unknown values get the default.
'''
import abc
import logging

import markdown

from dal.models.logs import Markup

logger = logging.getLogger(__name__)


class Preprocessor(abc.ABC):
    @abc.abstractmethod
    def process(self, log):
        """
        Return a copy of the log with the body transformed for storage.
        """
        pass


class DefaultPreprocessor(Preprocessor):
    """
    Keeps the body as is; the submitted text is also recorded as the source.
    """
    def process(self, log):
        return log.model_copy(update={"source": log.body, "markup": Markup.none})


class CommonmarkPreprocessor(Preprocessor):
    """
    The submitted markdown is kept as the source and the body is rendered to HTML.
    """
    def process(self, log):
        md = markdown.Markdown(extensions=['extra'])
        return log.model_copy(update={"source": log.body, "body": md.convert(log.body or ""), "markup": Markup.commonmark})


PREPROCESSORS = {
    Markup.none: DefaultPreprocessor(),
    Markup.commonmark: CommonmarkPreprocessor(),
}


def preprocessor_for(markup):
    """
    Look up the preprocessor for the markup discriminator, for example commonmark.
    Missing or unknown values fall back to the default preprocessor.
    """
    try:
        return PREPROCESSORS[Markup((markup or Markup.none.value).lower())]
    except ValueError:
        logger.warning("Unknown markup %s; using the default preprocessor", markup)
        return PREPROCESSORS[Markup.none]
