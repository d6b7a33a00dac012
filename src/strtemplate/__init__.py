"""strtemplate: a StringTemplate-style template engine.

Templates are plain text with embedded expressions. Attributes are bound
by the caller and pulled in by name at render time; a reference that is
not set on a template is looked up through the templates that invoked it.
Templates live in groups, which can inherit from other groups, promise to
implement interfaces and define named regions.

Example:
    >>> from strtemplate import StringTemplate
    >>> greeting = StringTemplate("Hello, <name; separator=\\", \\">!")
    >>> greeting.set_attribute("name", "Ann")
    >>> greeting.set_attribute("name", "Bob")
    >>> greeting.render()
    'Hello, Ann, Bob!'
"""

# Re-export exceptions from main exceptions module
from strtemplate.exceptions import (
    ArityMismatchError,
    InterfaceViolationError,
    InvalidAttributeNameError,
    RecursiveApplicationError,
    RegionRedefinitionError,
    SettingsLoadError,
    TemplateError,
    TemplateNotFoundError,
    TemplateSyntaxError,
    UnknownAttributeError,
)

from ._chunks import MISSING
from ._config import Delimiters, LogFormat, LoggingSettings, LogLevel, TemplateSettings, load_settings
from ._formal_args import UNKNOWN_ARGS, FormalArgument
from ._group import TemplateGroup, TemplateLoader
from ._interface import GroupInterface, TemplateSignature
from ._listener import ErrorBuffer, ErrorListener, LoggingErrorListener
from ._logging import create_logger
from ._registry import GroupLoader, GroupRegistry, MappingGroupLoader
from ._renderers import AttributeRenderer
from ._template import RegionType, StringTemplate, reset_template_counter
from ._values import DEFAULT_KEY, KEY_VALUE, Aggregate, AttributeList, PropertyProvider
from ._writer import AutoIndentWriter, NoIndentWriter, TemplateWriter

__all__ = [
    "DEFAULT_KEY",
    "KEY_VALUE",
    "MISSING",
    "UNKNOWN_ARGS",
    "Aggregate",
    "ArityMismatchError",
    "AttributeList",
    "AttributeRenderer",
    "AutoIndentWriter",
    "Delimiters",
    "ErrorBuffer",
    "ErrorListener",
    "FormalArgument",
    "GroupInterface",
    "GroupLoader",
    "GroupRegistry",
    "InterfaceViolationError",
    "InvalidAttributeNameError",
    "LogFormat",
    "LogLevel",
    "LoggingErrorListener",
    "LoggingSettings",
    "MappingGroupLoader",
    "NoIndentWriter",
    "PropertyProvider",
    "RecursiveApplicationError",
    "RegionRedefinitionError",
    "RegionType",
    "SettingsLoadError",
    "StringTemplate",
    "TemplateError",
    "TemplateGroup",
    "TemplateLoader",
    "TemplateNotFoundError",
    "TemplateSettings",
    "TemplateSignature",
    "TemplateSyntaxError",
    "TemplateWriter",
    "UnknownAttributeError",
    "create_logger",
    "load_settings",
    "reset_template_counter",
]
