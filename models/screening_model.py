from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

SELECTION_THRESHOLD = 60


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class ScreeningResult(CamelModel):
    cv_id: str = Field(alias="cvId")
    cv_name: str = Field(alias="cvName")
    score: float = Field(ge=0, le=100, strict=True)
    status: Literal["selected", "rejected"]
    missing_keywords: List[str] = Field(alias="missingKeywords")
    matched_skills: List[str] = Field(alias="matchedSkills")
    selection_reasons: List[str] = Field(alias="selectionReasons")
    rejection_reasons: List[str] = Field(alias="rejectionReasons")
    experience_match: str = Field(alias="experienceMatch")

    def honours_threshold(self) -> bool:
        return (self.status == "selected") == (self.score >= SELECTION_THRESHOLD)


ScreeningResultList = TypeAdapter(List[ScreeningResult])


class CVText(CamelModel):
    id: str
    name: str
    content: str


class ScreenCVsRequest(CamelModel):
    job_description: str = Field(default="", alias="jobDescription")
    cv_texts: List[CVText] = Field(default_factory=list, alias="cvTexts")


class ScreenCVsResponse(CamelModel):
    results: List[ScreeningResult]


class SelectionInput(CamelModel):
    cv_ids: List[str] = Field(default_factory=list, alias="cvIds")


class ScreeningRunInput(CamelModel):
    job_description: str = Field(default="", alias="jobDescription")
    cv_ids: List[str] = Field(default_factory=list, alias="cvIds")
    job_role_id: Optional[str] = Field(default=None, alias="jobRoleId")
