from typing import List, Optional

from pydantic import BaseModel, Field, SecretStr

from sqllink.link.models import LinkDefinition


class LinkConfig(BaseModel):
    """Configuration for a single linked table."""
    name: str = Field(..., description="Local table name.")
    schema_name: str = Field("PUBLIC", alias="schema", description="Local schema the table is registered in.")
    description: Optional[str] = None
    driver: Optional[str] = None
    url: str
    user: Optional[str] = None
    password: Optional[SecretStr] = None
    remote_schema: Optional[str] = None
    remote_table: str
    emit_updates: bool = False
    force: bool = False
    read_only: bool = False
    fetch_size: int = Field(0, ge=0)
    temporary: bool = False
    global_temporary: bool = False

    model_config = {"extra": "forbid", "populate_by_name": True}

    def to_definition(self) -> LinkDefinition:
        return LinkDefinition(
            driver=self.driver,
            url=self.url,
            user=self.user,
            password=self.password,
            remote_schema=self.remote_schema,
            remote_table=self.remote_table,
            emit_updates=self.emit_updates,
            force=self.force,
            read_only=self.read_only,
            fetch_size=self.fetch_size,
            temporary=self.temporary,
            global_temporary=self.global_temporary,
            comment=self.description,
        )


class LinkFileConfig(BaseModel):
    """File-level schema for links.yaml."""
    version: int = Field(1, description="Schema version")
    links: List[LinkConfig]
