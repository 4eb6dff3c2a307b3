import re
from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, AliasChoices, BaseModel, BeforeValidator, Field, field_validator

from app.utils.application_utils import parse_date

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _as_text(value):
    if isinstance(value, (int, float)):
        return str(value)
    return value


def _digits(length: int, label: str):
    def check(value: str) -> str:
        value = value.strip()
        if not re.fullmatch(rf"\d{{{length}}}", value):
            raise ValueError(f"{label} must be a {length}-digit number")
        return value
    return AfterValidator(check)


def _check_email(value: str) -> str:
    value = value.strip()
    if not EMAIL_RE.match(value):
        raise ValueError("Invalid email address")
    return value.lower()


MobileNumber = Annotated[str, BeforeValidator(_as_text), _digits(10, "Mobile number")]
AadhaarNumber = Annotated[str, BeforeValidator(_as_text), _digits(12, "Aadhaar number")]
Email = Annotated[str, AfterValidator(_check_email)]
FormDate = Annotated[datetime, BeforeValidator(parse_date)]
Text = Annotated[str, BeforeValidator(_as_text), Field(min_length=1, max_length=500)]
PositiveNumber = Annotated[float, Field(gt=0)]


class FormBase(BaseModel):
    """Base for the certificate forms. Holds applicant input only; the fee is set server-side."""


class BirthCertificateForm(FormBase):
    financial_year: Text
    child_name: Text
    date_of_birth: FormDate
    place_of_birth: Text
    gender: Literal["Male", "Female", "Other"]
    father_name: Text
    mother_name: Text
    parents_address_at_birth: Optional[Text] = None
    permanent_address_parent: Text
    applicant_full_name_english: Text
    applicant_full_name_devanagari: Text
    whatsapp_number: MobileNumber
    email: Optional[Email] = None
    address: Text
    utr_number: Text
    father_occupation: Optional[Text] = None
    mother_occupation: Optional[Text] = None


class DeathCertificateForm(FormBase):
    financial_year: Text
    deceased_name: Text = Field(..., validation_alias=AliasChoices("deceased_name", "name_of_deceased"))
    aadhaar_number: Optional[AadhaarNumber] = None
    address: Text
    date_of_death: FormDate
    time_of_death: Text
    cause_of_death: Text
    applicant_full_name_english: Text
    applicant_full_name_devanagari: Text
    whatsapp_number: MobileNumber
    email: Optional[Email] = None
    payment_option: Literal["UPI"] = "UPI"
    utr_number: Text


class MarriageCertificateForm(FormBase):
    date_of_marriage: FormDate
    place_of_marriage: Text
    husband_name: Text
    husband_age: int
    husband_father_name: Text
    husband_address: Optional[Text] = None
    husband_occupation: Optional[Text] = None
    wife_name: Text
    wife_age: int
    wife_father_name: Text
    wife_address: Optional[Text] = None
    wife_occupation: Optional[Text] = None
    solemnized_on: Optional[Text] = None
    whatsapp_number: Optional[MobileNumber] = None
    email: Optional[Email] = None
    utr_number: Optional[Text] = None

    @field_validator("husband_age")
    @classmethod
    def groom_of_age(cls, value: int) -> int:
        if value < 21:
            raise ValueError("Groom's age must be at least 21 years")
        return value

    @field_validator("wife_age")
    @classmethod
    def bride_of_age(cls, value: int) -> int:
        if value < 18:
            raise ValueError("Bride's age must be at least 18 years")
        return value


class TaxationForm(FormBase):
    financial_year: Text
    applicant_name: Text
    mobile_number: MobileNumber
    email: Optional[Email] = None
    tax_payer_number: Text
    address: Text
    group_name: Optional[Text] = None
    group_type: Optional[Text] = None
    old_tax_number: Optional[Text] = None
    new_tax_number: Optional[Text] = None
    utr_number: Text


class NoOutstandingDebtsForm(FormBase):
    financial_year: Text
    property_owner_name: Text
    aadhaar_card_number: AadhaarNumber
    whatsapp_number: MobileNumber
    email: Optional[Email] = None
    village_name: Text
    ward_no: Text
    street_name_number: Text
    property_number: Text
    applicant_full_name_english: Text
    applicant_aadhaar_number: AadhaarNumber
    utr_number: Text
    payment_option: Text = "UPI"


class HousingAssessment8Form(FormBase):
    financial_year: Text
    applicant_name: Text
    whatsapp_number: MobileNumber
    email: Optional[Email] = None
    utr_number: Text
    property_no: Text
    description_no: Optional[Text] = None
    property_name: Text
    occupant_name: Text
    length_in_feet: PositiveNumber
    height_in_feet: PositiveNumber
    total_area_sq_ft: PositiveNumber
    payment_option: Text = "UPI"


class BPLCertificateForm(FormBase):
    financial_year: Text
    applicant_name: Text
    aadhaar_number: AadhaarNumber
    address: Text
    taluka: Text
    district: Text
    whatsapp_number: MobileNumber
    email: Optional[Email] = None
    utr_number: Text
    bpl_year: Text
    bpl_list_serial_no: Text
    payment_option: Text = "UPI"


class NiradharCertificateForm(FormBase):
    financial_year: Text
    applicant_name: Text
    aadhaar_number: AadhaarNumber
    whatsapp_number: MobileNumber
    email: Optional[Email] = None
    utr_number: Text
    grampanchayat_name: Text
    taluka: Text
    district: Text
    payment_option: Text = "UPI"
