import logging
from sqlalchemy import (
    Table,
    Column,
    Integer,
    String,
    Text,
    Date,
    Float,
    ForeignKey,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import registry

logger = logging.getLogger(__name__)

# Read-only service: tables are declared for schema creation and
# documentation, queries go through views.py with raw SQL.
mapper_registry = registry()
metadata = mapper_registry.metadata

SCHEMAS = ("dbpm", "substitution")

produits = Table(
    "produits",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False, index=True),
    Column("accented_name", String(255)),
    Column("atc_code", String(16)),
    Column("cis_codes", ARRAY(String(16))),
)

molecules = Table(
    "molecules",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False),
)

produits_molecules = Table(
    "produits_molecules",
    metadata,
    Column("produit_id", Integer, ForeignKey("produits.id"), primary_key=True),
    Column("molecule_id", Integer, ForeignKey("molecules.id"), primary_key=True),
)

classes_atc = Table(
    "classes_atc",
    metadata,
    Column("code", String(16), primary_key=True),
    Column("description", String(255)),
)

incidents = Table(
    "incidents",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("product_id", Integer, ForeignKey("produits.id"), nullable=False, index=True),
    Column("status", String(32), nullable=False),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date),
    Column("calculated_end_date", Date),
)

cis_bdpm = Table(
    "cis_bdpm",
    metadata,
    Column("code_cis", String(16), primary_key=True),
    Column("denomination_medicament", Text),
    schema="dbpm",
)

equivalences_therapeutiques = Table(
    "equivalences_therapeutiques",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("code_cis_origine", String(16), index=True),
    Column("denomination_origine", Text),
    Column("code_cis_cible", String(16), index=True),
    Column("denomination_cible", Text),
    Column("score_similarite", Float),
    Column("type_equivalence", String(64)),
    Column("raison", Text),
    schema="substitution",
)

ema_incidents = Table(
    "ema_incidents",
    metadata,
    Column("incident_id", String(64), primary_key=True),
    Column("title", Text),
    Column("product_name", Text),
    Column("status", String(32)),
    Column("first_published", Date),
    Column("expected_resolution", Date),
    Column("reason_for_shortage_fr", Text),
    Column("member_states_affected_fr", Text),
    Column("summary_fr", Text),
)

ema_incidents_cis = Table(
    "ema_incidents_cis",
    metadata,
    Column("incident_id", String(64), ForeignKey("ema_incidents.incident_id"), primary_key=True),
    Column("code_cis", String(16), primary_key=True),
)

ventes = Table(
    "ventes",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("code_cis", String(16), index=True),
    Column("cip13", String(16)),
    Column("product_label", Text),
    Column("year", Integer),
    Column("total_boxes", Integer),
)
