# otp_common/db/repositories/__init__.py
from otp_common.utils.logging_config import setup_logging
from otp_common.utils.log_management import setup_production_file_logging

# Initialize repository logger
logger = setup_logging('otp_repositories', log_level='INFO', log_format='json')
setup_production_file_logging(logger, 'otp_repositories')

# Export repositories
from otp_common.db.repositories.email_otp_repository import EmailOtpRepository

__all__ = [
    'logger',
    'EmailOtpRepository',
]
