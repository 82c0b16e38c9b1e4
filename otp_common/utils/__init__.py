# otp_common/utils/__init__.py
