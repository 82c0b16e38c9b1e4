# services/otp_api/__init__.py
from otp_common.utils.logging_config import setup_logging
from otp_common.utils.log_management import setup_production_file_logging

# Initialize service-wide logger
logger = setup_logging('otp_api_service', log_level='INFO', log_format='text')
setup_production_file_logging(logger, 'otp_api_service')

# Export logger for use in other modules
__all__ = ['logger']
