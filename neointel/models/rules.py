"""
Rule tables for the narrative miner, medication classifier and indication
checks.

Each table is an ordered tuple of plain records so the rule set can be read,
tested and extended without touching the code that walks it. Patterns are
matched case-insensitively against the raw note text.
"""
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple

from neointel.models.data_structures import GestationalCategory


def _rx(pattern: str) -> Pattern:
    return re.compile(pattern, re.IGNORECASE)


@dataclass(frozen=True)
class ConditionRule:
    pattern: Pattern
    canonical_name: str
    requires_confirmation: bool = True


@dataclass(frozen=True)
class MarkerRule:
    pattern: Pattern
    label: str


# =============================================================================
# Conditions
# =============================================================================

CONDITION_RULES: Tuple[ConditionRule, ...] = (
    ConditionRule(_rx(r"\b(?:clinical\s+)?sepsis\b|\bsepticemia\b|\bseptic\b"), "Sepsis"),
    ConditionRule(_rx(r"\bpneumonia\b"), "Pneumonia"),
    ConditionRule(_rx(r"\bnec\b|\bnecrotizing\s+enterocolitis\b"), "NEC"),
    ConditionRule(_rx(r"\bivh\b|\bintraventricular\s+ha?emorrhage\b"), "IVH"),
    ConditionRule(_rx(r"\bpvl\b|\bperiventricular\s+leukomalacia\b"), "PVL"),
    ConditionRule(_rx(r"\brop\b|\bretinopathy\s+of\s+prematurity\b"), "ROP"),
    ConditionRule(_rx(r"\bbpd\b|\bbronchopulmonary\s+dysplasia\b"), "BPD"),
    ConditionRule(_rx(r"\bpda\b|\bpatent\s+ductus\s+arteriosus\b"), "PDA"),
    ConditionRule(_rx(r"\bapno?ea\s+of\s+prematurity\b|\brecurrent\s+apno?ea\b"),
                  "Apnea of Prematurity"),
    ConditionRule(_rx(r"\bhypoglyc(?:a)?emia\b"), "Hypoglycemia"),
    ConditionRule(_rx(r"\bhyperbilirubin(?:a)?emia\b|\b(?:neonatal\s+)?jaundice\b"),
                  "Neonatal Jaundice"),
    ConditionRule(_rx(r"\bmeningitis\b"), "Meningitis"),
    ConditionRule(_rx(r"\bseptic\s+shock\b|\bcardiogenic\s+shock\b"), "Shock"),
    ConditionRule(_rx(r"\bdic\b|\bdisseminated\s+intravascular\s+coagulation\b"), "DIC"),
    ConditionRule(_rx(r"\bhie\b|\bhypoxic\s*-?\s*ischa?emic\s+encephalopathy\b"
                      r"|\bbirth\s+asphyxia\b|\bperinatal\s+asphyxia\b"),
                  "Birth Asphyxia/HIE"),
    ConditionRule(_rx(r"\brds\b|\brespiratory\s+distress\s+syndrome\b|\bhyaline\s+membrane\s+disease\b"),
                  "RDS"),
    ConditionRule(_rx(r"\bmas\b|\bmeconium\s+aspiration\b"), "MAS"),
    ConditionRule(_rx(r"\bttn\b|\btransient\s+tachypno?ea\b"), "TTN"),
)

INFECTIOUS_CONDITIONS = frozenset({"Sepsis", "Pneumonia", "Meningitis"})

NEGATION_PATTERNS: Tuple[Pattern, ...] = tuple(_rx(p) for p in (
    r"\bno\b",
    r"\bruled\s+out\b",
    r"\bunlikely\b",
    r"\bnot\s+(?:seen|present|detected|found)\b",
    r"\babsence\s+of\b",
    r"\bnegative\s+for\b",
    r"\bsuspected\s+but\s+not\b",
    r"\br/o\b",
    r"\brule\s+out\b",
    r"\bexclud",
    r"\bnormal\b",
    r"\bwithout\b",
))

# Negators that directly follow the condition ("sepsis ruled out").
TRAILING_NEGATION = _rx(
    r"^\s*(?:was\s+|is\s+|has\s+been\s+|now\s+)?(?:ruled\s+out|unlikely|excluded|not\s+confirmed)\b")

CONFIRMATION_PATTERNS: Tuple[Pattern, ...] = tuple(_rx(p) for p in (
    r"\bdiagnosed\s+(?:with|as)\b",
    r"\bconfirmed\b",
    r"\bconsistent\s+with\b",
    r"\bestablished\b",
    r"\bculture\s+positive\b",
    r"\bpositive\s+for\b",
    r"\bdeveloped\b",
    r"\bpresenting\s+with\b",
    r"\badmitted\s+(?:for|with)\b",
))

TREATMENT_PATTERNS: Tuple[Pattern, ...] = tuple(_rx(p) for p in (
    r"\btreat(?:ed|ing|ment)\b",
    r"\bstarted\s+on\b.*\bfor\b",
    r"\bmanaged\s+(?:as|for)\b",
    r"\bon\s+antibiotics\s+for\b",
))

RESOLUTION_PATTERN = _rx(r"\b(?:resolved|recovered|improved|treated)\b")
# Negators between a condition and its resolution word ("sepsis not resolved").
RESOLUTION_NEGATION = _rx(r"\b(?:not|no|never|without|yet\s+to\s+be)\b|n't\b")

SENTENCE_BOUNDARY = re.compile(r"(?<!\d)[.;!?\n](?!\d)")


# =============================================================================
# Key events
# =============================================================================

CRITICAL_EVENT_TERMS: Tuple[Pattern, ...] = tuple(_rx(r"\b" + t) for t in (
    "sepsis", "shock", "arrest", "intubat", "ventilat", "resuscitat",
    "deteriorat", "critical", "emergency", "transfusion", "seizure",
))

MAJOR_EVENT_TERMS: Tuple[Pattern, ...] = tuple(_rx(p) for p in (
    r"\bstarted\s+(?:on\s+)?(?:iv\s+)?antibiotic",
    r"\bphototherapy",
    r"\bexchange\s+transfusion",
    r"\bcpap\b",
    r"\bsurfactant",
    r"\bblood\s+culture",
    r"\blumbar\s+puncture",
))

IMPROVEMENT_EVENT_TERMS: Tuple[Pattern, ...] = tuple(_rx(r"\b" + t) for t in (
    "improved", "weaned", "extubat", r"tolerating\s+feeds", "stable",
    "recovered", "resolved", "normal",
))

IMPROVEMENT_KEYWORDS = ("improved", "improving", "better", "stable",
                        "recovered", "resolved", "weaning")
WORSENING_KEYWORDS = ("deteriorat", "worse", "critical", "unstable", "desat")


# =============================================================================
# Care progression and interventions
# =============================================================================

FEEDING_MARKERS: Tuple[MarkerRule, ...] = (
    MarkerRule(_rx(r"\bnpo\b|\bnil\s+(?:per\s+)?(?:oral|os|by\s+mouth|mouth)\b"),
               "NPO (Nil Per Oral)"),
    MarkerRule(_rx(r"\btrophic\s+feed"), "Trophic Feeds Started"),
    MarkerRule(_rx(r"\bebm\b|\bexpressed\s+breast\s*milk"), "Expressed Breast Milk"),
    MarkerRule(_rx(r"\bfeeds?\s+(?:being\s+)?(?:advanc|increas)"
                   r"|\b(?:advanc|increas)\w*\s+(?:the\s+)?feeds?\b"), "Feeds Advanced"),
    MarkerRule(_rx(r"\bfull\s+(?:enteral\s+)?feeds?\b|\bgoal\s+feeds?\b"),
               "Full Enteral Feeds Achieved"),
    MarkerRule(_rx(r"\bdirect\s+breast\s*feed|\bdbf\b"), "Direct Breastfeeding"),
    MarkerRule(_rx(r"\bkmc\b|\bkangaroo"), "Kangaroo Mother Care"),
)

ESTABLISHED_FEEDING_STAGES = frozenset({
    "Full Enteral Feeds Achieved", "Direct Breastfeeding",
})

# Markers that describe how the baby is fed now (KMC excluded).
FEEDING_STATE_MARKERS: Tuple[MarkerRule, ...] = tuple(
    m for m in FEEDING_MARKERS if m.label != "Kangaroo Mother Care")

RESPIRATORY_MARKERS: Tuple[MarkerRule, ...] = (
    MarkerRule(_rx(r"\bmechanical(?:ly)?\s+ventilat|\bmv\b|\bsimv\b|\bac\s+mode\b"),
               "Mechanical Ventilation"),
    MarkerRule(_rx(r"\bweaning\s+(?:from\s+|off\s+)?(?:the\s+)?ventilat"
                   r"|\bventilator\s+weaning"), "Ventilator Weaning"),
    MarkerRule(_rx(r"\bextubat"), "Extubation"),
    MarkerRule(_rx(r"\bcpap\b"), "CPAP"),
    MarkerRule(_rx(r"\bhfnc\b|\bhigh[\s-]*flow"), "High Flow Nasal Cannula"),
    MarkerRule(_rx(r"\blow[\s-]*flow|\bnasal\s+prongs?\b|\b(?:o2|oxygen)\s+hood"),
               "Low Flow Oxygen"),
    MarkerRule(_rx(r"\broom\s+air\b|\bweaned\s+(?:off\s+)?(?:o2|oxygen)\b"
                   r"|\boff\s+(?:o2|oxygen)\b"), "Room Air"),
)

MINIMAL_RESPIRATORY_STAGES = frozenset({"Low Flow Oxygen", "Room Air"})

INTERVENTION_RULES: Tuple[MarkerRule, ...] = (
    MarkerRule(_rx(r"\bmechanical\s+ventilat|\bmv\b"), "Mechanical Ventilation"),
    MarkerRule(_rx(r"\bcpap\b|\bcontinuous\s+positive"), "CPAP"),
    MarkerRule(_rx(r"\bhfnc\b|\bhigh[\s-]*flow"), "High Flow Nasal Cannula"),
    MarkerRule(_rx(r"\bsurfactant"), "Surfactant Administration"),
    MarkerRule(_rx(r"\boxygen\s+therapy\b|\bo2\s+supplementation\b"), "Oxygen Therapy"),
    MarkerRule(_rx(r"\bintubat"), "Intubation"),
    MarkerRule(_rx(r"\bphototherapy"), "Phototherapy"),
    MarkerRule(_rx(r"\bexchange\s+transfusion"), "Exchange Transfusion"),
    MarkerRule(_rx(r"\bblood\s+transfusion|\bprbc\b"), "Blood Transfusion"),
    MarkerRule(_rx(r"\bplatelet\s+transfusion"), "Platelet Transfusion"),
    MarkerRule(_rx(r"\bffp\b|\bfresh\s+frozen\s+plasma"), "FFP Transfusion"),
    MarkerRule(_rx(r"\buvc\b|\bumbilical[\s-]*venous"), "Umbilical Venous Catheter"),
    MarkerRule(_rx(r"\buac\b|\bumbilical[\s-]*arterial"), "Umbilical Arterial Catheter"),
    MarkerRule(_rx(r"\bpicc\b"), "PICC Line"),
    MarkerRule(_rx(r"\btpn\b|\bparenteral\s+nutrition"), "Total Parenteral Nutrition"),
    MarkerRule(_rx(r"\blumbar\s+puncture|\blp\b"), "Lumbar Puncture"),
    MarkerRule(_rx(r"\bcranial\s+ultrasound|\bcus\b"), "Cranial Ultrasound"),
    MarkerRule(_rx(r"\becho\b|\bechocardiograph"), "Echocardiography"),
    MarkerRule(_rx(r"\btherapeutic\s+hypothermia|\bcooling\b"), "Therapeutic Hypothermia"),
)


# =============================================================================
# Medications
# =============================================================================

ANTIBIOTIC = "antibiotic"
RESPIRATORY = "respiratory"
CARDIOVASCULAR = "cardiovascular"
NEUROLOGICAL = "neurological"
NUTRITIONAL = "nutritional"
OTHER = "other"

MEDICATION_CATEGORY_RULES: Tuple[MarkerRule, ...] = (
    MarkerRule(_rx(r"ampicillin|gentamicin|amikacin|cefotaxime|ceftriaxone|meropenem"
                   r"|vancomycin|piperacillin|tazobactam|metronidazole|fluconazole"
                   r"|antibiotic"), ANTIBIOTIC),
    MarkerRule(_rx(r"aminophylline|caffeine|salbutamol|budesonide|surfactant"
                   r"|dexamethasone"), RESPIRATORY),
    MarkerRule(_rx(r"dopamine|dobutamine|adrenaline|epinephrine|milrinone"
                   r"|frusemide|furosemide|spironolactone|captopril"), CARDIOVASCULAR),
    MarkerRule(_rx(r"phenobarbit|phenytoin|levetiracetam|midazolam|morphine"
                   r"|fentanyl"), NEUROLOGICAL),
    MarkerRule(_rx(r"vitamin|\biron\b|calcium|phosph|zinc|\btpn\b|lipid"), NUTRITIONAL),
)

INOTROPE_PATTERN = _rx(r"dopamine|dobutamine|adrenaline|epinephrine|milrinone")


# =============================================================================
# Admission indications
# =============================================================================

# Most specific first; a ``None`` band is the generic "prematurity" indication.
PREMATURITY_INDICATION_BANDS: Tuple[Tuple[Pattern, Optional[GestationalCategory]], ...] = (
    (_rx(r"\bextreme(?:ly)?\s+(?:prematur|preterm)"), GestationalCategory.EXTREME_PRETERM),
    (_rx(r"\bvery\s+(?:prematur|preterm)"), GestationalCategory.VERY_PRETERM),
    (_rx(r"\bmoderate(?:ly)?\s+(?:prematur|preterm)"), GestationalCategory.MODERATE_PRETERM),
    (_rx(r"\blate\s+(?:prematur|preterm)"), GestationalCategory.LATE_PRETERM),
    (_rx(r"\bprematur|\bpreterm"), None),
)


def prematurity_band(indication: str) -> Tuple[bool, Optional[GestationalCategory]]:
    """Whether ``indication`` claims prematurity, and which band if specific."""
    for pattern, band in PREMATURITY_INDICATION_BANDS:
        if pattern.search(indication):
            return True, band
    return False, None
