from .models import NotificationRule
from .operators import compare
from .loader import RuleLoadError, read_rules, load_rule_file
from .engine import RuleEngine, carry_over_state, parse_count_result, parse_search_result
from .watcher import RulesWatcher

__all__ = [
    "NotificationRule",
    "compare",
    "RuleLoadError",
    "read_rules",
    "load_rule_file",
    "RuleEngine",
    "carry_over_state",
    "parse_count_result",
    "parse_search_result",
    "RulesWatcher",
]
