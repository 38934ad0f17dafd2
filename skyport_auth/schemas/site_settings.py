"""
Schema for the process-wide "settings" document.

Only forceVerify is interpreted here. Other keys an administrator stores in
the same document are preserved untouched.
"""

from pydantic import BaseModel, ConfigDict, Field


class SiteSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    # True: new accounts must verify their email and self-registration is open.
    # False: registration routes are hidden and new accounts are auto-verified.
    force_verify: bool = Field(default=False, alias="forceVerify")

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
