from .logger import setup_logger, get_logger
from .time import utc_now, epoch_millis, is_older_than, index_date_suffix

__all__ = ["setup_logger", "get_logger", "utc_now", "epoch_millis", "is_older_than", "index_date_suffix"]
