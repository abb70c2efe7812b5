"""clasificacion_jerarquica

Crea las tablas de reportes financieros, registros por cuenta, reglas de
clasificación y la bitácora de cambios retroactivos.

Revision ID: 3c7e2a91d4f0
Revises:
Create Date: 2026-03-02 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c7e2a91d4f0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'reporte_financiero',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('nombre', sa.String(200), nullable=False),
        sa.Column('mes', sa.Integer(), nullable=False),
        sa.Column('anio', sa.Integer(), nullable=False),
        sa.Column('archivo_nombre', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'registro_financiero',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('reporte_id', sa.Integer(), sa.ForeignKey('reporte_financiero.id'), nullable=False),
        sa.Column('codigo', sa.String(17), nullable=False),
        sa.Column('concepto', sa.String(300), nullable=True),
        sa.Column('planta', sa.String(20), nullable=True),
        sa.Column('cargos', sa.Numeric(15, 2), nullable=True),
        sa.Column('abonos', sa.Numeric(15, 2), nullable=True),
        sa.Column('monto', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('tipo', sa.String(20), nullable=False, server_default='Indefinido'),
        sa.Column('categoria_1', sa.String(200), nullable=False, server_default='Sin Categoría'),
        sa.Column('sub_categoria', sa.String(200), nullable=False, server_default='Sin Subcategoría'),
        sa.Column('clasificacion', sa.String(200), nullable=False, server_default='Sin Clasificación'),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('reporte_id', 'codigo', name='uq_registro_reporte_codigo'),
    )
    op.create_index('ix_registro_financiero_reporte_id', 'registro_financiero', ['reporte_id'])
    op.create_index('ix_registro_financiero_codigo', 'registro_financiero', ['codigo'])

    op.create_table(
        'regla_clasificacion',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('codigo_cuenta', sa.String(17), nullable=False),
        sa.Column('tipo', sa.String(20), nullable=False, server_default='Indefinido'),
        sa.Column('categoria_1', sa.String(200), nullable=False, server_default='Sin Categoría'),
        sa.Column('sub_categoria', sa.String(200), nullable=False, server_default='Sin Subcategoría'),
        sa.Column('clasificacion', sa.String(200), nullable=False, server_default='Sin Clasificación'),
        sa.Column('nivel_jerarquia', sa.Integer(), nullable=False),
        sa.Column('codigo_familia', sa.String(9), nullable=False),
        sa.Column('vigente_desde', sa.Date(), server_default=sa.func.current_date(), nullable=False),
        sa.Column('vigente_hasta', sa.Date(), nullable=True),
        sa.Column('activa', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('aplica_a_reportes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('motivo', sa.Text(), nullable=True),
        sa.Column('actualizado_por', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_regla_clasificacion_codigo_cuenta', 'regla_clasificacion', ['codigo_cuenta'])
    op.create_index('ix_regla_clasificacion_codigo_familia', 'regla_clasificacion', ['codigo_familia'])

    op.create_table(
        'cambio_clasificacion',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('registro_id', sa.Integer(), sa.ForeignKey('registro_financiero.id'), nullable=False),
        sa.Column('regla_id', sa.Integer(), sa.ForeignKey('regla_clasificacion.id'), nullable=True),
        sa.Column('reporte_id', sa.Integer(), nullable=False),
        sa.Column('codigo', sa.String(17), nullable=False),
        sa.Column('etiqueta_anterior', sa.Text(), nullable=False),
        sa.Column('etiqueta_nueva', sa.Text(), nullable=False),
        sa.Column('motivo', sa.Text(), nullable=True),
        sa.Column('usuario_id', sa.String(100), nullable=True),
        sa.Column('fecha', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_cambio_clasificacion_registro_id', 'cambio_clasificacion', ['registro_id'])
    op.create_index('ix_cambio_clasificacion_codigo', 'cambio_clasificacion', ['codigo'])


def downgrade() -> None:
    op.drop_table('cambio_clasificacion')
    op.drop_table('regla_clasificacion')
    op.drop_table('registro_financiero')
    op.drop_table('reporte_financiero')
