from sqlalchemy import Column, String, Date, Text, Boolean, Integer, Numeric, ForeignKey, Index, text
from .base import Base, TimestampMixin, generate_uuid


class MedicalRecordStatus:
    ACTIVE = "active"
    DISCHARGED = "discharged"


class PatientMedicalRecord(Base, TimestampMixin):
    __tablename__ = "patient_medical_records"
    __table_args__ = (
        # One open record per patient, enforced by the database rather than a read-then-insert
        Index(
            "uq_medical_records_one_active_per_patient",
            "patient_id",
            unique=True,
            sqlite_where=text("status = 'active' AND is_active"),
            postgresql_where=text("status = 'active' AND is_active"),
        ),
    )

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    age = Column(Integer, nullable=True)
    gender = Column(String(30), nullable=True)
    weight = Column(Numeric(6, 2), nullable=True)
    height = Column(Numeric(4, 2), nullable=True)
    birth_date = Column(Date, nullable=True)
    profession = Column(String(100), nullable=True)
    marital_status = Column(String(30), nullable=True)
    visit_reason = Column(Text, nullable=False)
    current_condition = Column(Text, nullable=False)
    medical_history = Column(Text, nullable=False)
    treatment_plan = Column(Text, nullable=False)
    evaluation = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=MedicalRecordStatus.ACTIVE)
    is_active = Column(Boolean, nullable=False, default=True)


class PatientEvolution(Base, TimestampMixin):
    """Session-by-session progress note attached to an open medical record."""
    __tablename__ = "patient_evolutions"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    medical_record_id = Column(
        String, ForeignKey("patient_medical_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    queixas_relatos = Column(Text, nullable=False)  # Complaints reported by the patient
    conduta_atendimento = Column(Text, nullable=False)  # Conduct of the session
    observacoes = Column(Text, nullable=True)
    progress_score = Column(Integer, nullable=False)
    previous_score = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class PatientPreEvaluation(Base, TimestampMixin):
    """Intake questionnaire filled before the first physiotherapy session."""
    __tablename__ = "patient_pre_evaluations"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)

    # Dados gerais
    profissao = Column(Text, nullable=True)
    atividade_fisica = Column(Text, nullable=True)
    hobby = Column(Text, nullable=True)

    # Dor e sintomas
    queixa_principal = Column(Text, nullable=True)
    tempo_problema = Column(Text, nullable=True)
    inicio_problema = Column(Text, nullable=True)
    tratamento_anterior = Column(Text, nullable=True)
    descricao_dor = Column(Text, nullable=True)
    escala_dor = Column(Text, nullable=True)
    irradiacao_dor = Column(Text, nullable=True)
    piora_dor = Column(Text, nullable=True)
    alivio_dor = Column(Text, nullable=True)
    interferencia_dor = Column(Text, nullable=True)

    # Saude e historico
    diagnostico_medico = Column(Text, nullable=True)
    exames_recentes = Column(Text, nullable=True)
    condicoes_saude = Column(Text, nullable=True)
    cirurgias = Column(Text, nullable=True)
    medicamentos = Column(Text, nullable=True)
    alergias = Column(Text, nullable=True)
    doencas_familiares = Column(Text, nullable=True)
    condicoes_similares = Column(Text, nullable=True)

    # Estilo de vida
    alimentacao = Column(Text, nullable=True)
    padrao_sono = Column(Text, nullable=True)
    alcool = Column(Text, nullable=True)
    fumante = Column(Text, nullable=True)
    ingestao_agua = Column(Text, nullable=True)
    tempo_sentado = Column(Text, nullable=True)
    nivel_estresse = Column(Text, nullable=True)
    questoes_emocionais = Column(Text, nullable=True)
    impacto_qualidade_vida = Column(Text, nullable=True)
    expectativas_tratamento = Column(Text, nullable=True)
    exercicios_casa = Column(Text, nullable=True)

    # Funcionalidade
    restricoes = Column(Text, nullable=True)
    dificuldade_dia = Column(Text, nullable=True)
    dispositivo_auxilio = Column(Text, nullable=True)
    dificuldade_equilibrio = Column(Text, nullable=True)
    limitacao_movimento = Column(Text, nullable=True)

    # Informacoes adicionais
    info_adicional = Column(Text, nullable=True)
    duvidas_fisioterapia = Column(Text, nullable=True)
