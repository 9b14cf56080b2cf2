"""Canonical seller-readiness requirements (Swedish due-diligence checklist)."""

from dataclasses import dataclass

from dealgate.models.enums import RequirementCategory

CATALOG_VERSION = "2024.1"


@dataclass(frozen=True)
class Requirement:
    """A single due-diligence checklist item. Immutable reference data."""

    id: str
    category: RequirementCategory
    title: str
    description: str
    mandatory: bool
    doc_types: tuple[str, ...] = ()  # accepted extensions, informational
    requires_signature: bool = False
    min_years: int | None = None
    period_type: str | None = None  # FY | YTD | LTM | Monthly


CATEGORY_LABELS: dict[RequirementCategory, str] = {
    RequirementCategory.FINANS: "Finansiellt",
    RequirementCategory.SKATT: "Skatt",
    RequirementCategory.JURIDIK: "Juridik",
    RequirementCategory.HR: "HR & Personal",
    RequirementCategory.KOMMERSIELLT: "Kommersiellt",
    RequirementCategory.IT: "IT & Säkerhet",
    RequirementCategory.OPERATION: "Operation & ESG",
}

_F = RequirementCategory.FINANS
_S = RequirementCategory.SKATT
_J = RequirementCategory.JURIDIK
_H = RequirementCategory.HR
_K = RequirementCategory.KOMMERSIELLT
_I = RequirementCategory.IT
_O = RequirementCategory.OPERATION


REQUIREMENTS: tuple[Requirement, ...] = (
    # ── Finans ────────────────────────────────────────────────────────────────
    Requirement(
        id="fin-arsredovisning",
        category=_F,
        title="Årsredovisningar + revisionsberättelser (3–5 år)",
        description="Fullständiga ÅR och revisionsberättelser, signerade PDF",
        mandatory=True,
        doc_types=("pdf",),
        requires_signature=True,
        min_years=3,
        period_type="FY",
    ),
    Requirement(
        id="fin-manadsbokslut",
        category=_F,
        title="Månadsbokslut (LTM/YTD)",
        description="Resultat- och balansrapporter månadsvis, LTM/YTD",
        mandatory=True,
        doc_types=("pdf", "xlsx"),
        period_type="Monthly",
    ),
    Requirement(
        id="fin-huvudbok",
        category=_F,
        title="Huvudbok (LTM/YTD)",
        description="Full huvudbok i CSV/XLSX",
        mandatory=True,
        doc_types=("xlsx", "csv"),
        period_type="Monthly",
    ),
    Requirement(
        id="fin-ar-aging",
        category=_F,
        title="Kundreskontra (AR) med åldersanalys",
        description="AR-aging med förfallostruktur",
        mandatory=True,
        doc_types=("xlsx", "csv", "pdf"),
    ),
    Requirement(
        id="fin-ap-aging",
        category=_F,
        title="Leverantörsreskontra (AP) med åldersanalys",
        description="AP-aging med förfallostruktur",
        mandatory=True,
        doc_types=("xlsx", "csv", "pdf"),
    ),
    Requirement(
        id="fin-top10-kunder",
        category=_F,
        title="Top-10 kunder (andel, intäkter)",
        description="Lista top-10 kunder med andel och belopp",
        mandatory=True,
        doc_types=("xlsx", "csv", "pdf"),
    ),
    Requirement(
        id="fin-top10-leverantorer",
        category=_F,
        title="Top-10 leverantörer (andel, inköp)",
        description="Lista top-10 leverantörer med andel och belopp",
        mandatory=True,
        doc_types=("xlsx", "csv", "pdf"),
    ),
    Requirement(
        id="fin-ebitda-bridge",
        category=_F,
        title="EBITDA-bridge och engångsposter",
        description="Justeringar med belopp, beskrivning och evidens",
        mandatory=True,
        doc_types=("xlsx", "pdf"),
    ),
    Requirement(
        id="fin-cashflow-budget",
        category=_F,
        title="Kassaflödesprognos / budget (12–24 mån)",
        description="Prognoser och antaganden",
        mandatory=True,
        doc_types=("xlsx", "pdf"),
    ),
    Requirement(
        id="fin-lagerlista",
        category=_F,
        title="Lagerlista + lagervärdering",
        description="Lagerlista med värderingsprinciper",
        mandatory=False,
        doc_types=("xlsx", "pdf"),
    ),
    Requirement(
        id="fin-anlaggning",
        category=_F,
        title="Anläggningsregister + avskrivningar",
        description="Register över anläggningstillgångar och avskrivningsprinciper",
        mandatory=False,
        doc_types=("xlsx", "pdf"),
    ),
    Requirement(
        id="fin-skuld-finans",
        category=_F,
        title="Skuld/finansieringsöversikt + covenants",
        description="Lån, borgen, pant, covenant-status",
        mandatory=True,
        doc_types=("pdf", "xlsx"),
    ),
    # ── Skatt ─────────────────────────────────────────────────────────────────
    Requirement(
        id="tax-deklarationer",
        category=_S,
        title="Deklarationer 3–5 år (inkomst, moms, AGI)",
        description="Fullständiga deklarationer per år",
        mandatory=True,
        doc_types=("pdf",),
        min_years=3,
        period_type="FY",
    ),
    Requirement(
        id="tax-rulings",
        category=_S,
        title="Tax rulings / dialoger / tvister",
        description="Underlag för pågående eller avslutade skattetvister/dialoger",
        mandatory=False,
        doc_types=("pdf",),
    ),
    Requirement(
        id="tax-tp-doc",
        category=_S,
        title="Transfer pricing-dokumentation",
        description="TP-dokumentation om koncern/internprissättning finns",
        mandatory=False,
        doc_types=("pdf",),
    ),
    # ── Juridik ───────────────────────────────────────────────────────────────
    Requirement(
        id="leg-bolagsdokument",
        category=_J,
        title="Registreringsbevis, bolagsordning, aktiebok/cap table, ägaravtal",
        description="Giltiga och uppdaterade bolags- och ägardokument",
        mandatory=True,
        doc_types=("pdf",),
        requires_signature=True,
    ),
    Requirement(
        id="leg-protokoll",
        category=_J,
        title="Styrelse- och stämmoprotokoll (3–5 år)",
        description="Signerade protokoll med beslutsunderlag",
        mandatory=True,
        doc_types=("pdf",),
        requires_signature=True,
        min_years=3,
    ),
    Requirement(
        id="leg-avtal-vasentliga",
        category=_J,
        title="Väsentliga avtal (kund, leverantör, hyra, agent, dist, JV/licens)",
        description="Aktuella signerade avtal, senast gällande version",
        mandatory=True,
        doc_types=("pdf",),
        requires_signature=True,
    ),
    Requirement(
        id="leg-pant-lan",
        category=_J,
        title="Pant-/säkerhetsavtal, lån, borgen",
        description="Översikt + avtal, covenantstatus",
        mandatory=True,
        doc_types=("pdf",),
    ),
    Requirement(
        id="leg-forsakring",
        category=_J,
        title="Försäkringar + skadehistorik",
        description="Gällande försäkringsbrev och skador",
        mandatory=False,
        doc_types=("pdf",),
    ),
    Requirement(
        id="leg-tvister",
        category=_J,
        title="Tvister/claims och myndighetsärenden",
        description="Lista med status, reserveringar",
        mandatory=True,
        doc_types=("pdf",),
    ),
    Requirement(
        id="leg-gdpr",
        category=_J,
        title="GDPR/Privacy: biträdesavtal, registerförteckningar, policies",
        description="Dokumentation av personuppgiftsbehandling och biträden",
        mandatory=True,
        doc_types=("pdf",),
    ),
    # ── HR ────────────────────────────────────────────────────────────────────
    Requirement(
        id="hr-nyckel-avtal",
        category=_H,
        title="Anställningsavtal nyckelpersoner/ledning",
        description="Signerade avtal, konkurrensklausuler",
        mandatory=True,
        doc_types=("pdf",),
        requires_signature=True,
    ),
    Requirement(
        id="hr-lone-bonus",
        category=_H,
        title="Löne/bonusstruktur, incitaments-/optionsprogram",
        description="Översikt av komp och optioner",
        mandatory=True,
        doc_types=("pdf", "xlsx"),
    ),
    Requirement(
        id="hr-pension-semester",
        category=_H,
        title="Pensionsåtaganden, semester- och kompskuld",
        description="Underlag och beräkningar",
        mandatory=True,
        doc_types=("xlsx", "pdf"),
    ),
    Requirement(
        id="hr-policy",
        category=_H,
        title="Policyer: uppförandekod, arbetsmiljö",
        description="Aktuella policyer",
        mandatory=False,
        doc_types=("pdf",),
    ),
    # ── Kommersiellt ──────────────────────────────────────────────────────────
    Requirement(
        id="com-topplistor",
        category=_K,
        title="Kund-/leverantörstopplistor (andel, intäkter/inköp)",
        description="Sammanställning topplistor, koncentrationsrisk",
        mandatory=True,
        doc_types=("xlsx", "pdf"),
    ),
    Requirement(
        id="com-pipeline-orderbok",
        category=_K,
        title="Pipeline/orderbok, prishistorik",
        description="Aktuell pipeline, order backlog, prishöjningar",
        mandatory=False,
        doc_types=("xlsx", "pdf"),
    ),
    Requirement(
        id="com-sla-nps",
        category=_K,
        title="SLA/servicenivåer, kundnöjdhet/NPS",
        description="SLA-dokument, kundnöjdhetsdata",
        mandatory=False,
        doc_types=("pdf", "xlsx"),
    ),
    Requirement(
        id="com-partner",
        category=_K,
        title="Partner/återförsäljare, provisioner/kickbacks",
        description="Avtal/översikt över partnerprogram",
        mandatory=False,
        doc_types=("pdf",),
    ),
    # ── IT / Infosec ──────────────────────────────────────────────────────────
    Requirement(
        id="it-systemkarta",
        category=_I,
        title="Systemkarta (ERP/CRM/BI), licenser, ägande",
        description="Översikt över system, integrationer och licenser",
        mandatory=True,
        doc_types=("pdf", "png"),
    ),
    Requirement(
        id="it-infosec-policy",
        category=_I,
        title="Infosec-policy, accesskontroller, backup/DR-plan, incidenthistorik",
        description="Dokumenterade kontroller och incidentlogg",
        mandatory=True,
        doc_types=("pdf",),
    ),
    Requirement(
        id="it-gdpr-teknik",
        category=_I,
        title="GDPR-tekniska kontroller: loggning, behörigheter, retention",
        description="Tekniska rutiner för dataskydd",
        mandatory=True,
        doc_types=("pdf",),
    ),
    Requirement(
        id="it-ip-oss",
        category=_I,
        title="IP/kod: äganderätt, open-source compliance, licenser",
        description="Bevis på ägande och OSS-efterlevnad",
        mandatory=True,
        doc_types=("pdf",),
    ),
    # ── Operation / ESG / Övrigt ──────────────────────────────────────────────
    Requirement(
        id="ops-processer",
        category=_O,
        title="Processdokumentation (O2C, P2P, F2D m.fl.)",
        description="Kärnprocesser dokumenterade",
        mandatory=False,
        doc_types=("pdf",),
    ),
    Requirement(
        id="ops-hse-esg",
        category=_O,
        title="HSE/ESG, certifikat, policys",
        description="Miljö/arbetsmiljöpolicy, certifieringar",
        mandatory=False,
        doc_types=("pdf",),
    ),
    Requirement(
        id="ops-leasing",
        category=_O,
        title="Leasing-/hyresavtal, underhållsplaner",
        description="Gällande avtal och underhållsplan",
        mandatory=False,
        doc_types=("pdf",),
    ),
)

REQUIREMENTS_BY_ID: dict[str, Requirement] = {r.id: r for r in REQUIREMENTS}


def get_requirement(requirement_id: str) -> Requirement | None:
    return REQUIREMENTS_BY_ID.get(requirement_id)
