"""
Pydantic schemas for environments and variables.

Environments are named, switchable sets of variables scoped to a project.
Variables are key-value pairs referenced from requests with the
{{variable_name}} placeholder syntax.
"""

from typing import Annotated

from pydantic import BaseModel, StringConstraints


NonBlankName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class EnvironmentVariable(BaseModel):
    """
    A single environment variable.

    Keys are not required to be unique; resolution uses the first enabled
    variable with a matching key.
    """
    id: str
    key: str
    value: str = ""
    enabled: bool = True


class Environment(BaseModel):
    id: str
    name: str
    variables: list[EnvironmentVariable] = []


# Variable schemas

class VariableBase(BaseModel):
    """Base schema with common variable fields."""
    key: str
    value: str = ""


class VariableCreate(VariableBase):
    """Schema for creating a new variable."""
    enabled: bool = True


class VariableUpdate(BaseModel):
    """Schema for updating an existing variable. All fields are optional."""
    key: str | None = None
    value: str | None = None
    enabled: bool | None = None


# Environment schemas

class EnvironmentCreate(BaseModel):
    """Schema for creating a new environment."""
    name: NonBlankName
    variables: list[VariableCreate] = []


class EnvironmentUpdate(BaseModel):
    name: NonBlankName


class ResolveRequest(BaseModel):
    """Schema for previewing placeholder resolution."""
    text: str


class ResolveResponse(BaseModel):
    resolved: str
    unknown_variables: list[str] = []
