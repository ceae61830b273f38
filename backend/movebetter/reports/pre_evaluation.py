"""
Pre-evaluation sheet: drawn PDF (fpdf2) and printable HTML (Jinja2).

Both render from ``sheet_lines``, so an unanswered question always shows
"Não informado".
"""
import os
from typing import List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..core.config import settings
from ..utils.formatting import format_date_br, or_not_informed, pre_evaluation_filename
from .common import ClinicPDF

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")

SECTIONS: List[Tuple[str, List[Tuple[str, str]]]] = [
    ("DADOS GERAIS", [
        ("profissao", "Profissão"),
        ("atividade_fisica", "Atividade Física"),
        ("hobby", "Hobby"),
    ]),
    ("DOR E SINTOMAS", [
        ("queixa_principal", "Queixa Principal"),
        ("tempo_problema", "Tempo do Problema"),
        ("inicio_problema", "Início do Problema"),
        ("tratamento_anterior", "Tratamento Anterior"),
        ("escala_dor", "Escala da Dor"),
        ("descricao_dor", "Descrição da Dor"),
        ("irradiacao_dor", "Irradiação da Dor"),
        ("piora_dor", "O que Piora a Dor"),
        ("alivio_dor", "O que Alivia a Dor"),
        ("interferencia_dor", "Interferência nas Atividades"),
    ]),
    ("SAÚDE E HISTÓRICO MÉDICO", [
        ("diagnostico_medico", "Diagnóstico Médico"),
        ("exames_recentes", "Exames Recentes"),
        ("condicoes_saude", "Condições de Saúde"),
        ("cirurgias", "Cirurgias"),
        ("medicamentos", "Medicamentos"),
        ("alergias", "Alergias"),
        ("doencas_familiares", "Doenças Familiares"),
        ("condicoes_similares", "Condições Similares na Família"),
    ]),
    ("ESTILO DE VIDA", [
        ("alimentacao", "Alimentação"),
        ("padrao_sono", "Padrão de Sono"),
        ("alcool", "Consumo de Álcool"),
        ("fumante", "Fumante"),
        ("ingestao_agua", "Ingestão de Água"),
        ("tempo_sentado", "Tempo Sentado/Dia"),
        ("nivel_estresse", "Nível de Estresse"),
        ("exercicios_casa", "Exercícios em Casa"),
        ("questoes_emocionais", "Questões Emocionais"),
        ("impacto_qualidade_vida", "Impacto na Qualidade de Vida"),
        ("expectativas_tratamento", "Expectativas do Tratamento"),
    ]),
    ("FUNCIONALIDADE E LIMITAÇÕES", [
        ("dificuldade_dia", "Dificuldades no Dia a Dia"),
        ("dispositivo_auxilio", "Dispositivo de Auxílio"),
        ("dificuldade_equilibrio", "Dificuldade de Equilíbrio"),
        ("limitacao_movimento", "Limitação de Movimento"),
        ("restricoes", "Restrições Especiais"),
    ]),
    ("INFORMAÇÕES ADICIONAIS", [
        ("info_adicional", "Informações Adicionais"),
        ("duvidas_fisioterapia", "Dúvidas sobre Fisioterapia"),
    ]),
]


def sheet_lines(evaluation: dict) -> List[Tuple[str, str, str]]:
    """(section, label, value) for every question, in print order."""
    return [
        (section, label, or_not_informed(evaluation.get(field)))
        for section, fields in SECTIONS
        for field, label in fields
    ]


def build_pre_evaluation_pdf(evaluation: dict, patient_name: str) -> bytes:
    created = format_date_br(evaluation.get("created_at"))
    pdf = ClinicPDF("Pré-avaliação Completa", f"{patient_name} - {created}" if created else patient_name)
    current = None
    for section, label, value in sheet_lines(evaluation):
        if section != current:
            pdf.section(section)
            current = section
        pdf.field(label, value)
    return pdf.to_bytes()


_env: Optional[Environment] = None


def _environment() -> Environment:
    global _env
    if _env is None:
        _env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
    return _env


def render_pre_evaluation_html(evaluation: dict, patient_name: str) -> str:
    sections = []
    for section, label, value in sheet_lines(evaluation):
        if not sections or sections[-1]["title"] != section:
            sections.append({"title": section, "fields": []})
        sections[-1]["fields"].append({"label": label, "value": value})
    template = _environment().get_template("pre_evaluation.html")
    return template.render(
        clinic_name=settings.CLINIC_NAME,
        patient_name=patient_name,
        created_at=format_date_br(evaluation.get("created_at")),
        sections=sections,
        filename=pre_evaluation_filename(patient_name, evaluation.get("created_at")),
    )
