"""
Database models used for OAuth token storage and the shop-facing projections.
"""

import datetime

from pydantic import BaseModel, Field, SecretStr
from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from storefront_auth.core.database import Base


class ShopCredentials(Base):
    """
    Represents the OAuth credentials of one installed shop.

    Attributes:
        shop (str): The shop's ``*.myshopify.com`` domain.
        access_token (str): Offline access token issued by Shopify.
        scope (str): Comma separated scopes granted at issuance time.
        installed_at (datetime): When the shop first installed the app.
        updated_at (datetime): When the credentials were last written.
    """

    __tablename__ = "shops"

    shop: Mapped[str] = mapped_column(String(255), primary_key=True)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    scope: Mapped[str] = mapped_column(Text, nullable=False)
    installed_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ShopCredentials(shop={self.shop}, scope={self.scope})>"


class CredentialRecord(BaseModel):
    """
    Credential record handed to trusted callers.

    The token is a ``SecretStr`` so it is masked in reprs and serialized
    output; call ``get_secret_value()`` to use it.
    """

    shop: str
    access_token: SecretStr
    scope: str
    installed_at: datetime.datetime
    updated_at: datetime.datetime

    @classmethod
    def from_row(cls, row: ShopCredentials) -> "CredentialRecord":
        return cls(
            shop=row.shop,
            access_token=SecretStr(row.access_token),
            scope=row.scope,
            installed_at=row.installed_at,
            updated_at=row.updated_at,
        )


class ShopSummary(BaseModel):
    """Non-secret projection of a credential record."""

    shop: str = Field(..., description="Shop domain")
    scope: str = Field(..., description="Granted scopes")
    installed_at: datetime.datetime = Field(..., description="First install time")

    model_config = {
        "json_schema_extra": {
            "example": {
                "shop": "acme.myshopify.com",
                "scope": "read_products",
                "installed_at": "2025-03-19T10:00:00+00:00",
            }
        }
    }


class TokenGrant(BaseModel):
    """Result of exchanging an authorization code."""

    access_token: SecretStr
    scope: str
