# tests/test_cleanup.py

from datetime import datetime, timedelta
from unittest.mock import patch

from otp_common.db.models import EmailOtpToken
from otp_common.db.repositories import EmailOtpRepository
from otp_common.verification.cleanup import sweep

NOW = datetime(2024, 5, 1, 12, 0, 0)


def _seed(db, expires_offsets):
    ids = []
    for index, offset in enumerate(expires_offsets):
        expires_at = NOW + offset
        ids.append(EmailOtpRepository.insert(
            db, f"user{index}@example.com", "123456", expires_at - timedelta(minutes=5), expires_at
        ))
    return ids


def test_sweep_removes_only_expired(db, session_factory):
    expired_ids = _seed(db, [timedelta(minutes=-10), timedelta(seconds=-1)])
    live_ids = _seed(db, [timedelta(0), timedelta(minutes=3)])

    assert sweep(NOW, session_factory=session_factory) == 2

    db.expire_all()
    remaining = {token.id for token in db.query(EmailOtpToken).all()}
    assert remaining == set(live_ids)
    assert not remaining & set(expired_ids)


def test_sweep_is_repeatable(db, session_factory):
    _seed(db, [timedelta(minutes=-1)])

    assert sweep(NOW, session_factory=session_factory) == 1
    assert sweep(NOW, session_factory=session_factory) == 0


def test_sweep_empty_store(session_factory):
    assert sweep(NOW, session_factory=session_factory) == 0


def test_sweep_skips_tokens_removed_concurrently(db, session_factory):
    """Tokens already consumed by a verification are not counted"""
    _seed(db, [timedelta(minutes=-2), timedelta(minutes=-1)])

    with patch.object(EmailOtpRepository, "delete", side_effect=[False, True]) as mock_delete:
        assert sweep(NOW, session_factory=session_factory) == 1

    assert mock_delete.call_count == 2


def test_sweep_defaults_to_current_time(db, session_factory):
    _seed(db, [timedelta(minutes=-1)])

    with patch("otp_common.verification.cleanup.utc_now", return_value=NOW + timedelta(days=1)) as mock_now:
        assert sweep(session_factory=session_factory) == 1

    mock_now.assert_called_once()
