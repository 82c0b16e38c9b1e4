# otp_common/verification/__init__.py
from otp_common.utils.logging_config import setup_logging
from otp_common.utils.log_management import setup_production_file_logging

# Initialize verification library logger
logger = setup_logging('otp_verification', log_level='INFO', log_format='text')
setup_production_file_logging(logger, 'otp_verification')

# Export logger for use in other modules
__all__ = ['logger']
