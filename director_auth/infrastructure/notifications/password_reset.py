"""Password reset delivery."""

import logging

from director_auth.core.auth.entities import User
from director_auth.core.auth.interfaces import PasswordResetNotifierInterface

logger = logging.getLogger("director_auth.notifications")


class LoggingPasswordResetNotifier(PasswordResetNotifierInterface):
    """
    Records that a reset link is due for delivery.

    The token itself is never written to the log.
    """

    async def send_password_reset(self, user: User, token: str) -> None:
        logger.info(
            "Password reset requested",
            extra={"user_id": user.id, "email": user.email},
        )
