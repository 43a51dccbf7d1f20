"""fieldcheck: declarative validation of field/value mappings."""
from fieldcheck.config import Settings, get_settings
from fieldcheck.logging import configure_from_settings, configure_logging, get_logger
from fieldcheck.validation import (
    Validation,
    CheckResult,
    WILDCARD,
    factory,
    register_rule,
    rule_function,
    register_filter,
    filter_function,
    register_message,
    Collaborators,
)
from fieldcheck.errors import (
    ConfigurationError,
    UnknownRuleError,
    UnknownFilterError,
)

__version__ = "0.1.0"
