from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class EducationEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    degree: str | None = None
    institution: str | None = None
    yearOfCompletion: str | None = None
    grade: str | None = None

    def is_blank(self) -> bool:
        return not (self.degree or "").strip() or not (self.institution or "").strip()


class WorkExperienceEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    companyName: str | None = None
    jobTitle: str | None = None
    startDate: str | None = None
    endDate: str | None = None
    responsibilities: str | None = None
    isCurrentJob: bool = False

    def is_blank(self) -> bool:
        return not (self.companyName or "").strip()


class CertificationEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    name: str | None = None
    issuingOrganization: str | None = None
    issueDate: str | None = None
    expiryDate: str | None = None
    credentialId: str | None = None
    credentialUrl: str | None = None

    def is_blank(self) -> bool:
        return not (self.name or "").strip()


class ProfileInput(BaseModel):
    """
    Profile fields accepted from the client.

    Identity (candidate id, email) and file references are never taken from the
    request body; unknown keys are dropped.
    """
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    fullName: str | None = None
    dateOfBirth: str | None = None
    gender: str | None = None
    # Older clients still send the field as `cnic`.
    nationalId: str | None = Field(default=None, validation_alias=AliasChoices("nationalId", "cnic"))
    phone: str | None = None
    address: str | None = None
    education: list[EducationEntry] = Field(default_factory=list)
    workExperience: list[WorkExperienceEntry] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    certifications: list[CertificationEntry] = Field(default_factory=list)

    @field_validator("education", "workExperience", "skills", "certifications", mode="before")
    @classmethod
    def _none_to_list(cls, v):  # noqa: ANN001
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("must be a list")
        return v

    @field_validator("skills")
    @classmethod
    def _drop_blank_skills(cls, v: list[str]) -> list[str]:
        return [s.strip() for s in v if isinstance(s, str) and s.strip()]
