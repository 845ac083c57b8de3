# FILE: decision_engine/taxonomy.py
"""
Category registry and default angles.

Per-category flags drive the orchestrator instead of hard-coded names:
- requires_feasibility_eval: realism check runs for this category
- skip_ambition_confirmation: ambition gate is skipped (angle support path instead)

default_angles() is the no-judge fallback used whenever a category analysis
is actionable but produced no angles, or controllability is low.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .schemas import Angle, Category, CategorySuggestion


@dataclass(frozen=True)
class CategoryDoc:
    category: Category
    label_key: str
    description: str
    requires_feasibility_eval: bool = False
    skip_ambition_confirmation: bool = False
    angle_keys: Tuple[str, ...] = ()


# =============================================================================
# REGISTRY
# =============================================================================

CATEGORY_DOCS: Dict[Category, CategoryDoc] = {
    Category.LEARN: CategoryDoc(
        category=Category.LEARN,
        label_key="categoryLabelLearn",
        description="Acquire a skill or knowledge (languages, exams, instruments as study, tools).",
        requires_feasibility_eval=True,
        angle_keys=("reach_basics", "practice_daily", "prep_plan"),
    ),
    Category.CREATE: CategoryDoc(
        category=Category.CREATE,
        label_key="categoryLabelCreate",
        description="Make or ship something (writing, art, apps, podcasts, crafts).",
        requires_feasibility_eval=True,
        angle_keys=("ship_project", "draft_daily", "skills"),
    ),
    Category.PERFORM: CategoryDoc(
        category=Category.PERFORM,
        label_key="categoryLabelPerform",
        description="Reach a performance target (sport, stage, music performance, public speaking).",
        angle_keys=("practice_daily", "prep_plan", "confidence"),
    ),
    Category.WELLBEING: CategoryDoc(
        category=Category.WELLBEING,
        label_key="categoryLabelWellbeing",
        description="Emotional, relational or health balance (breakups, stress, sleep, habits of care).",
        requires_feasibility_eval=True,
        skip_ambition_confirmation=True,
        angle_keys=("process_emotions", "confidence", "communication"),
    ),
    Category.SOCIAL: CategoryDoc(
        category=Category.SOCIAL,
        label_key="categoryLabelSocial",
        description="Relationships with others (friends, networking, family, colleagues).",
        angle_keys=("communication", "confidence", "opportunity"),
    ),
    Category.CHALLENGE: CategoryDoc(
        category=Category.CHALLENGE,
        label_key="categoryLabelChallenge",
        description="A personal challenge or streak (habits, 30-day challenges, bold goals).",
        angle_keys=("habits", "prep_plan", "skills"),
    ),
}


def get_category_doc(category: Category) -> CategoryDoc:
    return CATEGORY_DOCS[Category(category)]


def category_suggestions(limit: int = 3) -> List[CategorySuggestion]:
    return [
        CategorySuggestion(category=doc.category, label_key=doc.label_key)
        for doc in list(CATEGORY_DOCS.values())[:limit]
    ]


# =============================================================================
# DEFAULT ANGLES
# =============================================================================

ANGLE_LABEL_KEYS: Dict[str, str] = {
    "process_emotions": "controllabilityAngleProcessEmotions",
    "confidence": "controllabilityAngleConfidence",
    "communication": "controllabilityAngleCommunication",
    "reach_basics": "controllabilityAngleReachBasics",
    "practice_daily": "controllabilityAnglePracticeDaily",
    "prep_plan": "controllabilityAnglePrepPlan",
    "ship_project": "controllabilityAngleShipProject",
    "draft_daily": "controllabilityAngleDraftDaily",
    "skills": "controllabilityAngleSkills",
    "opportunity": "controllabilityAngleOpportunity",
    "habits": "controllabilityAngleHabits",
}

# {intent} is replaced with the user's (trimmed) intent
ANGLE_TEXTS: Dict[str, Dict[str, str]] = {
    "process_emotions": {
        "en": "Process the emotions and regain balance",
        "fr": "Traverser ses émotions et retrouver son équilibre",
        "es": "Procesar las emociones y recuperar el equilibrio",
        "de": "Gefühle verarbeiten und wieder ins Gleichgewicht kommen",
        "it": "Elaborare le emozioni e ritrovare l'equilibrio",
    },
    "confidence": {
        "en": "Rebuild self-confidence step by step",
        "fr": "Reconstruire sa confiance en soi pas à pas",
        "es": "Reconstruir la confianza en uno mismo paso a paso",
        "de": "Selbstvertrauen Schritt für Schritt aufbauen",
        "it": "Ricostruire la fiducia in se stessi passo dopo passo",
    },
    "communication": {
        "en": "Communicate clearly and calmly",
        "fr": "Communiquer clairement et calmement",
        "es": "Comunicar con claridad y calma",
        "de": "Klar und ruhig kommunizieren",
        "it": "Comunicare con chiarezza e calma",
    },
    "reach_basics": {
        "en": "Reach the basics: {intent}",
        "fr": "Acquérir les bases : {intent}",
        "es": "Dominar lo básico: {intent}",
        "de": "Die Grundlagen erreichen: {intent}",
        "it": "Raggiungere le basi: {intent}",
    },
    "practice_daily": {
        "en": "Practice a little every day: {intent}",
        "fr": "Pratiquer un peu chaque jour : {intent}",
        "es": "Practicar un poco cada día: {intent}",
        "de": "Jeden Tag ein wenig üben: {intent}",
        "it": "Esercitarsi un po' ogni giorno: {intent}",
    },
    "prep_plan": {
        "en": "Follow a structured preparation plan",
        "fr": "Suivre un plan de préparation structuré",
        "es": "Seguir un plan de preparación estructurado",
        "de": "Einem strukturierten Vorbereitungsplan folgen",
        "it": "Seguire un piano di preparazione strutturato",
    },
    "ship_project": {
        "en": "Ship a small finished version: {intent}",
        "fr": "Livrer une petite version terminée : {intent}",
        "es": "Terminar una versión pequeña: {intent}",
        "de": "Eine kleine fertige Version abschließen: {intent}",
        "it": "Completare una piccola versione finita: {intent}",
    },
    "draft_daily": {
        "en": "Produce a short draft every day",
        "fr": "Produire un court brouillon chaque jour",
        "es": "Producir un borrador corto cada día",
        "de": "Jeden Tag einen kurzen Entwurf erstellen",
        "it": "Produrre una breve bozza ogni giorno",
    },
    "skills": {
        "en": "Build the core skills first",
        "fr": "Développer d'abord les compétences clés",
        "es": "Desarrollar primero las habilidades clave",
        "de": "Zuerst die Kernfähigkeiten aufbauen",
        "it": "Sviluppare prima le competenze chiave",
    },
    "opportunity": {
        "en": "Create more opportunities to connect",
        "fr": "Créer plus d'occasions de rencontres",
        "es": "Crear más oportunidades para conectar",
        "de": "Mehr Gelegenheiten für Begegnungen schaffen",
        "it": "Creare più occasioni di incontro",
    },
    "habits": {
        "en": "Install a small daily habit",
        "fr": "Installer une petite habitude quotidienne",
        "es": "Instalar un pequeño hábito diario",
        "de": "Eine kleine tägliche Gewohnheit etablieren",
        "it": "Installare una piccola abitudine quotidiana",
    },
}

ANGLE_LOCALES = ("en", "fr", "es", "de", "it")


def _primary(locale: Optional[str]) -> str:
    if not locale:
        return ""
    return re.split(r"[-_]", locale.strip().lower())[0]


def _angle_locale(locale: Optional[str], intent_lang: Optional[str]) -> str:
    for candidate in (_primary(locale), _primary(intent_lang)):
        if candidate in ANGLE_LOCALES:
            return candidate
    return "en"


def default_angles(
    category: Category,
    locale: Optional[str],
    intent: str,
    days: int,
    intent_lang: Optional[str] = None,
) -> List[Angle]:
    """Category-keyed fallback angles. Pure table lookup, never empty."""
    doc = CATEGORY_DOCS.get(Category(category)) or CATEGORY_DOCS[Category.CHALLENGE]
    lang = _angle_locale(locale, intent_lang)
    subject = (intent or "").strip()

    angles: List[Angle] = []
    for key in doc.angle_keys:
        template = ANGLE_TEXTS[key].get(lang) or ANGLE_TEXTS[key]["en"]
        angles.append(Angle(
            label=ANGLE_LABEL_KEYS[key],
            next_intent=template.format(intent=subject),
            days=days,
        ))
    return angles
