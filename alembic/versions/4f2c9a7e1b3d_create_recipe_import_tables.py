"""create recipe import tables

Revision ID: 4f2c9a7e1b3d
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4f2c9a7e1b3d"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# (name_en, name_de, abbreviation_en, abbreviation_de)
MEASUREMENT_TYPES = [
    ("teaspoon", "Teelöffel", "tsp", "TL"),
    ("tablespoon", "Esslöffel", "tbsp", "EL"),
    ("fluid ounce", "Flüssigunze", "fl oz", "fl oz"),
    ("cup", "Tasse", "cup", "Tasse"),
    ("milliliter", "Milliliter", "ml", "ml"),
    ("deciliter", "Deziliter", "dl", "dl"),
    ("liter", "Liter", "L", "L"),
    ("quart", "Quart", "qt", "qt"),
    ("gallon", "Gallone", "gal", "gal"),
    ("gram", "Gramm", "g", "g"),
    ("ounce", "Unze", "oz", "oz"),
    ("kilogram", "Kilogramm", "kg", "kg"),
    ("pound", "Pfund", "lb", "Pfd"),
    ("piece", "Stück", "pc", "St"),
    ("slice", "Scheibe", "slice", "Scheibe"),
    ("clove", "Zehe", "clove", "Zehe"),
    ("bunch", "Bund", "bunch", "Bund"),
    ("sprig", "Zweig", "sprig", "Zweig"),
    ("leaf", "Blatt", "leaf", "Blatt"),
    ("pinch", "Prise", "pinch", "Prise"),
    ("dash", "Spritzer", "dash", "Spritzer"),
    ("handful", "Handvoll", "handful", "Handvoll"),
    ("to taste", "nach Geschmack", "to taste", "n.G."),
    ("some", "etwas", "some", "etwas"),
    ("can", "Dose", "can", "Dose"),
    ("package", "Packung", "pkg", "Pkg"),
    ("jar", "Glas", "jar", "Glas"),
    ("bottle", "Flasche", "bottle", "Fl"),
    ("bag", "Beutel", "bag", "Btl"),
    ("box", "Schachtel", "box", "Schachtel"),
]


def timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    measurement_types = op.create_table(
        "measurement_types",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name_en", sa.String(100), nullable=False, unique=True),
        sa.Column("name_de", sa.String(100), nullable=False, unique=True),
        sa.Column("abbreviation_en", sa.String(20), nullable=False),
        sa.Column("abbreviation_de", sa.String(20), nullable=False),
        *timestamp_columns(),
    )

    op.create_table(
        "ingredients",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name_en", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("name_de", sa.String(255), nullable=False, unique=True, index=True),
        *timestamp_columns(),
    )

    op.create_table(
        "recipes",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("user_id", sa.String(64), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("author", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("prep_time_minutes", sa.Integer(), nullable=True),
        sa.Column("cook_time_minutes", sa.Integer(), nullable=True),
        sa.Column("total_time_minutes", sa.Integer(), nullable=True),
        sa.Column("recipe_yield", sa.String(100), nullable=True),
        sa.Column("category", sa.String(100), nullable=True, index=True),
        sa.Column("cuisine", sa.String(100), nullable=True, index=True),
        sa.Column("keywords", sa.JSON(), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("source_kind", sa.String(20), nullable=False),
        sa.Column("language", sa.String(5), nullable=False, server_default="en"),
        sa.Column("image_url", sa.Text(), nullable=True),
        *timestamp_columns(),
    )

    op.create_table(
        "recipe_steps",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "recipe_id",
            sa.Integer(),
            sa.ForeignKey("recipes.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("step_number", sa.Integer(), nullable=False),
        sa.Column("instruction", sa.Text(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        *timestamp_columns(),
        sa.UniqueConstraint("recipe_id", "step_number", name="uq_recipe_step_number"),
    )

    op.create_table(
        "recipe_ingredients",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "recipe_id",
            sa.Integer(),
            sa.ForeignKey("recipes.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("ingredient_id", sa.Integer(), sa.ForeignKey("ingredients.id"), nullable=False, index=True),
        sa.Column("measurement_type_id", sa.Integer(), sa.ForeignKey("measurement_types.id"), nullable=True),
        sa.Column("quantity", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        *timestamp_columns(),
    )

    op.create_table(
        "token_accounts",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("balance", sa.Integer(), nullable=False, server_default="0"),
        *timestamp_columns(),
    )

    op.create_table(
        "token_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("user_id", sa.String(64), nullable=False, index=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("reason", sa.String(50), nullable=False),
        sa.Column(
            "related_recipe_id",
            sa.Integer(),
            sa.ForeignKey("recipes.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        *timestamp_columns(),
    )

    op.create_table(
        "import_logs",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("import_type", sa.String(10), nullable=False),
        sa.Column("source", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending", index=True),
        sa.Column("stage", sa.String(30), nullable=True),
        sa.Column(
            "recipe_id",
            sa.Integer(),
            sa.ForeignKey("recipes.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("recipe_name", sa.String(255), nullable=True),
        sa.Column("tokens_used", sa.Integer(), nullable=True),
        sa.Column("input_tokens", sa.Integer(), nullable=True),
        sa.Column("output_tokens", sa.Integer(), nullable=True),
        sa.Column("models_used", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        *timestamp_columns(),
    )
    op.create_index("ix_import_logs_user_created", "import_logs", ["user_id", "created_at"])

    op.bulk_insert(
        measurement_types,
        [
            {"name_en": en, "name_de": de, "abbreviation_en": abbr_en, "abbreviation_de": abbr_de}
            for en, de, abbr_en, abbr_de in MEASUREMENT_TYPES
        ],
    )


def downgrade() -> None:
    op.drop_index("ix_import_logs_user_created", table_name="import_logs")
    op.drop_table("import_logs")
    op.drop_table("token_transactions")
    op.drop_table("token_accounts")
    op.drop_table("recipe_ingredients")
    op.drop_table("recipe_steps")
    op.drop_table("recipes")
    op.drop_table("ingredients")
    op.drop_table("measurement_types")
