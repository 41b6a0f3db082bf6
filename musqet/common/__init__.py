# Common utilities
from musqet.common.crypto import CryptoUtils as CryptoUtils
from musqet.common.logging_utils import setup_logger as setup_logger
from musqet.common.mixins import Configurable as Configurable

__all__ = ["Configurable", "CryptoUtils", "setup_logger"]
