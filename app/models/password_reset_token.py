from app.models.base import OneTimeTokenBase


class PasswordResetToken(OneTimeTokenBase, table=True):
    __tablename__ = "password_reset_tokens"
