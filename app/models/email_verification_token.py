from app.models.base import OneTimeTokenBase


class EmailVerificationToken(OneTimeTokenBase, table=True):
    __tablename__ = "email_verification_tokens"
