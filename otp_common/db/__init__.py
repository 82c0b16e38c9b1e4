# otp_common/db/__init__.py
from otp_common.utils.logging_config import setup_logging
from otp_common.utils.log_management import setup_production_file_logging

# Initialize db logger
logger = setup_logging('otp_db', log_level='INFO', log_format='json')
setup_production_file_logging(logger, 'otp_db')

__all__ = ['logger']
