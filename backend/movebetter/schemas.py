"""Request / form schemas shared by the HTTP routes and the form controller."""
import re
from datetime import date, time
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_email(value: Optional[str], required: bool) -> Optional[str]:
    value = (value or "").strip()
    if not value:
        if required:
            raise ValueError("E-mail obrigatório")
        return None
    if not EMAIL_RE.match(value):
        raise ValueError("E-mail inválido")
    return value.lower()


class EmailMixin(BaseModel):
    @field_validator("email", check_fields=False)
    @classmethod
    def validate_email(cls, value, info):
        return _check_email(value, cls.model_fields[info.field_name].is_required())


# ── Auth ─────────────────────────────────────────────────────────────────────

class RegisterRequest(EmailMixin):
    name: str = Field(min_length=2)
    email: str
    password: str = Field(min_length=6)
    cpf: Optional[str] = None
    phone: Optional[str] = None
    crefito: Optional[str] = None


class LoginRequest(EmailMixin):
    email: str
    password: str = Field(min_length=1)


class PatientLoginRequest(EmailMixin):
    email: str
    password: str = Field(min_length=1)


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: str
    phone: Optional[str] = None
    crefito: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2)
    phone: Optional[str] = None
    crefito: Optional[str] = None
    cpf_cnpj: Optional[str] = None
    cep: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, max_length=2)


# ── Patients ─────────────────────────────────────────────────────────────────

PatientStatusLiteral = Literal["active", "inactive", "completed"]


class PatientCreate(EmailMixin):
    name: str = Field(min_length=2)
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    cpf: Optional[str] = Field(default=None, max_length=14)
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    medical_history: Optional[str] = None
    status: PatientStatusLiteral = "active"


class PatientUpdate(EmailMixin):
    name: Optional[str] = Field(default=None, min_length=2)
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    cpf: Optional[str] = Field(default=None, max_length=14)
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    medical_history: Optional[str] = None
    status: Optional[PatientStatusLiteral] = None


class PatientAccessCreate(EmailMixin):
    patient_id: str
    email: str
    password: str = Field(min_length=6)
    allowed_pages: List[str] = []


# ── Scheduling & plans ───────────────────────────────────────────────────────

class AppointmentCreate(BaseModel):
    patient_id: Optional[str] = None
    session_type: str = Field(min_length=1)
    appointment_date: date
    appointment_time: time
    duration_minutes: int = Field(default=60, ge=1, le=600)
    status: Literal["scheduled", "completed", "cancelled", "no_show"] = "scheduled"
    notes: Optional[str] = None
    observations: Optional[str] = None


class AppointmentUpdate(BaseModel):
    patient_id: Optional[str] = None
    session_type: Optional[str] = Field(default=None, min_length=1)
    appointment_date: Optional[date] = None
    appointment_time: Optional[time] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=600)
    status: Optional[Literal["scheduled", "completed", "cancelled", "no_show"]] = None
    notes: Optional[str] = None
    observations: Optional[str] = None


class TreatmentPlanCreate(BaseModel):
    patient_id: Optional[str] = None
    name: str = Field(min_length=2)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = True


class ExerciseCreate(BaseModel):
    name: str = Field(min_length=2)
    description: Optional[str] = None
    instructions: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1)
    difficulty_level: Optional[int] = Field(default=None, ge=1, le=3)
    category: Optional[str] = None
    video_url: Optional[str] = None
    image_url: Optional[str] = None
    equipment_needed: List[str] = []


class PlanExerciseCreate(BaseModel):
    treatment_plan_id: str
    exercise_id: str
    day_number: int = Field(ge=1)
    sets: int = Field(default=1, ge=1)
    repetitions: Optional[int] = Field(default=None, ge=1)
    duration_minutes: Optional[int] = Field(default=None, ge=1)
    notes: Optional[str] = None


# ── Clinical ─────────────────────────────────────────────────────────────────

class MedicalRecordCreate(BaseModel):
    age: Optional[int] = Field(default=None, ge=0, le=130)
    gender: Optional[str] = None
    weight: Optional[Decimal] = Field(default=None, gt=0)
    height: Optional[Decimal] = Field(default=None, gt=0)
    birth_date: Optional[date] = None
    profession: Optional[str] = None
    marital_status: Optional[str] = None
    visit_reason: str = Field(min_length=1)
    current_condition: str = Field(min_length=1)
    medical_history: str = Field(min_length=1)
    treatment_plan: str = Field(min_length=1)
    evaluation: Optional[str] = None


class EvolutionCreate(BaseModel):
    medical_record_id: str
    patient_id: Optional[str] = None
    queixas_relatos: str = Field(min_length=1)
    conduta_atendimento: str = Field(min_length=1)
    observacoes: Optional[str] = None
    progress_score: int = Field(ge=0, le=10)


# ── Packages & finance ───────────────────────────────────────────────────────

class PackageCreate(BaseModel):
    name: str = Field(min_length=2)
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    sessions_included: int = Field(default=0, ge=0)
    validity_days: int = Field(default=30, ge=1)
    services: List[str] = []


class ProposalCreate(BaseModel):
    package_id: Optional[str] = None
    package_name: Optional[str] = None
    patient_name: str = Field(min_length=2)
    package_price: Decimal = Field(ge=0)
    transport_cost: Decimal = Field(default=Decimal("0"), ge=0)
    other_costs: Decimal = Field(default=Decimal("0"), ge=0)
    other_costs_note: Optional[str] = None
    payment_method: Literal["pix", "cash", "debit", "credit"] = "pix"
    installments: int = Field(default=1, ge=1, le=12)
    expiry_date: Optional[date] = None


class CreditCardRateCreate(BaseModel):
    name: str = Field(pattern=r"^\d{1,2}x$")
    rate: Decimal = Field(ge=0, le=100)
    is_active: bool = True


class PackageAssign(BaseModel):
    patient_id: str
    package_id: str
    final_price: Optional[Decimal] = Field(default=None, ge=0)
    assigned_date: Optional[date] = None


class FinancialCategoryCreate(BaseModel):
    name: str = Field(min_length=2)
    type: Literal["income", "expense"]
    color: str = "#3B82F6"


class FinancialTransactionCreate(BaseModel):
    category_id: Optional[str] = None
    patient_id: Optional[str] = None
    description: str = Field(min_length=2)
    amount: Decimal = Field(gt=0)
    type: Literal["income", "expense"]
    payment_status: Literal["pending", "paid", "overdue", "cancelled"] = "pending"
    transaction_date: date
    due_date: Optional[date] = None
    payment_date: Optional[date] = None
    notes: Optional[str] = None


class PreEvaluationAnswers(BaseModel):
    """Every questionnaire answer is optional free text."""

    profissao: Optional[str] = None
    atividade_fisica: Optional[str] = None
    hobby: Optional[str] = None
    queixa_principal: Optional[str] = None
    tempo_problema: Optional[str] = None
    inicio_problema: Optional[str] = None
    tratamento_anterior: Optional[str] = None
    descricao_dor: Optional[str] = None
    escala_dor: Optional[str] = None
    irradiacao_dor: Optional[str] = None
    piora_dor: Optional[str] = None
    alivio_dor: Optional[str] = None
    interferencia_dor: Optional[str] = None
    diagnostico_medico: Optional[str] = None
    exames_recentes: Optional[str] = None
    condicoes_saude: Optional[str] = None
    cirurgias: Optional[str] = None
    medicamentos: Optional[str] = None
    alergias: Optional[str] = None
    doencas_familiares: Optional[str] = None
    condicoes_similares: Optional[str] = None
    alimentacao: Optional[str] = None
    padrao_sono: Optional[str] = None
    alcool: Optional[str] = None
    fumante: Optional[str] = None
    ingestao_agua: Optional[str] = None
    tempo_sentado: Optional[str] = None
    nivel_estresse: Optional[str] = None
    questoes_emocionais: Optional[str] = None
    impacto_qualidade_vida: Optional[str] = None
    expectativas_tratamento: Optional[str] = None
    exercicios_casa: Optional[str] = None
    restricoes: Optional[str] = None
    dificuldade_dia: Optional[str] = None
    dispositivo_auxilio: Optional[str] = None
    dificuldade_equilibrio: Optional[str] = None
    limitacao_movimento: Optional[str] = None
    info_adicional: Optional[str] = None
    duvidas_fisioterapia: Optional[str] = None


class PreEvaluationCreate(PreEvaluationAnswers):
    patient_id: str
