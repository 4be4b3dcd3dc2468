from typing import Optional

from pydantic import BaseModel, Field

class RuleMapping(BaseModel):
  title: str = Field(min_length=1)
  body: str = Field(min_length=1)
  group: Optional[str] = None
  icon: Optional[str] = None
  url: Optional[str] = None
  sound: Optional[str] = None

class Rule(BaseModel):
  id: str = Field(min_length=1)
  name: str = Field(min_length=1)
  mapping: RuleMapping
  barkUrl: str = Field(min_length=1)
