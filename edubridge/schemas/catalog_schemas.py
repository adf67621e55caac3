"""
edubridge/schemas/catalog_schemas.py
Request/Response schemas for programmes and subjects
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict


class ProgrammeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    name: str
    department: str
    total_semesters: int
    is_active: bool


class ProgrammeCreate(BaseModel):
    id: str = Field(..., min_length=2, max_length=20)
    name: str = Field(..., min_length=1, max_length=200)
    department: str = Field(..., min_length=1, max_length=100)
    total_semesters: int = Field(5, ge=1, le=12)
    code: Optional[str] = Field(None, max_length=20)


class ProgrammeUpdate(BaseModel):
    is_active: bool


class SubjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    programme_id: str
    semester: int
    credit_hours: int
    description: Optional[str] = None
    is_active: bool


class SubjectCreate(BaseModel):
    programme_id: str = Field(..., min_length=1, max_length=20)
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=200)
    # Range depends on the programme; checked by the catalog service
    semester: int
    credit_hours: int = Field(3, ge=0, le=20)
    description: Optional[str] = None


class SubjectsBySemesterResponse(BaseModel):
    programme_id: str
    semesters: Dict[int, List[SubjectResponse]]
