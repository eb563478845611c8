"""
Ruptura Watcher Dashboard

A Streamlit dashboard for the 14:00 / 18:00 shortage ("rutura") sheets.
Run with: streamlit run app.py

Environment:
    RUPTURA_DATA_FILE   where the imported batch is kept (default data/ruturas.json)
    RUPTURA_LOG_LEVEL   logging level (default INFO)
    RUPTURA_TOP_*, RUPTURA_WEEK_SCOPED, RUPTURA_LOCALE   see AnalysisConfig.from_env
"""

import logging
import os
import sys
import tempfile
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import streamlit as st
import plotly.graph_objects as go

from clients.ruptura_workbook import RupturaWorkbookLoader
from core import (
    AnalysisConfig,
    ShortageFilter,
    analyze_batch,
    assess_batch_quality,
    filter_options,
    prepare_batch,
)
from core.records import SourceSheet
from storage import JsonFileRepository, RepositoryError

logging.basicConfig(
    level=os.environ.get("RUPTURA_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("ruptura.app")

# Page config
st.set_page_config(
    page_title="Ruptura Watcher",
    page_icon="📦",
    layout="wide",
)

st.title("📦 Ruptura Watcher")
st.caption("Ruturas 14H vs 18H: o que ficou por repor")

config = AnalysisConfig.from_env()
repository = JsonFileRepository(os.environ.get("RUPTURA_DATA_FILE", "data/ruturas.json"))
loader = RupturaWorkbookLoader()


def import_upload(uploaded) -> None:
    """Read an uploaded workbook/CSV, append it to the stored batch."""
    suffix = Path(uploaded.name).suffix.lower()
    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
        tmp.write(uploaded.getbuffer())
        tmp_path = Path(tmp.name)

    try:
        if suffix == ".csv":
            result = loader.load_csv(tmp_path, loader.sheet_source(uploaded.name))
        else:
            result = loader.load_workbook(tmp_path)
    finally:
        tmp_path.unlink(missing_ok=True)

    if result.records:
        saved = repository.save(repository.load() + result.records)
        st.sidebar.success(f"{len(result.records):,} ruturas importadas ({saved.saved:,} no total)")
    for error in result.errors[:10]:
        st.sidebar.error(error)
    for warning in result.warnings[:10]:
        st.sidebar.warning(warning)


# --- Sidebar: import & storage ---
st.sidebar.header("Dados")
uploaded = st.sidebar.file_uploader("Importar ficheiro (.xlsx ou .csv)", type=["xlsx", "csv"])
if uploaded is not None and st.sidebar.button("Importar"):
    try:
        import_upload(uploaded)
    except RepositoryError as e:
        st.sidebar.error(f"Erro ao guardar: {e}")

if st.sidebar.button("Limpar todos os dados"):
    try:
        repository.clear()
        st.sidebar.info("Dados apagados")
    except RepositoryError as e:
        st.sidebar.error(f"Erro ao apagar: {e}")

try:
    records = repository.load()
except RepositoryError as e:
    st.error(f"Não foi possível carregar os dados guardados: {e}")
    st.stop()

if not records:
    st.info("Importe dados de ruturas para ver as análises.")
    st.stop()

batch = prepare_batch(records, config)

# --- Sidebar: filters ---
st.sidebar.header("Filtros")
options = filter_options(batch)
any_option = "Todas"


def pick(label: str, values: list[str]) -> str | None:
    choice = st.sidebar.selectbox(label, [any_option] + values)
    return None if choice == any_option else choice


def pick_dates(dates) -> tuple:
    """Sidebar date range; the full range (or no dated record) means no bound."""
    dates = dates.dropna()
    if dates.empty:
        return None, None
    first, last = dates.min().date(), dates.max().date()
    chosen = st.sidebar.date_input("Período", value=(first, last), min_value=first, max_value=last)
    # A range is a 1-tuple while only its start has been clicked
    if isinstance(chosen, (tuple, list)):
        start = chosen[0] if len(chosen) > 0 else None
        end = chosen[1] if len(chosen) > 1 else None
        if (start, end) == (first, last):
            return None, None
        return start, end
    return chosen, chosen


date_from, date_to = pick_dates(batch["date"])
selected_sheet = pick("Origem", options["source_sheet"])
filters = ShortageFilter(
    date_from=date_from,
    date_to=date_to,
    week_label=pick("Semana", options["week_label"]),
    section=pick("Seção", options["section"]),
    requisition_type=pick("Tipo de requisição", options["requisition_type"]),
    product_category=pick("Tipo de produto", options["product_category"]),
    shortage_type=pick("Tipologia", options["shortage_type"]),
    source_sheet=SourceSheet(selected_sheet) if selected_sheet else None,
    search=st.sidebar.text_input("Pesquisar (produto, OT, REQ)") or None,
)

filtered = filters.apply(batch, config)
analytics = analyze_batch(filtered, config)
metrics = analytics.key_metrics

# --- Key Metrics Row ---
st.header("Indicadores")
col1, col2, col3, col4 = st.columns(4)

with col1:
    st.metric(
        "Total de Ruturas",
        f"{metrics['total_records']:,}",
        delta=f"{metrics['active_shortages']:,} ativas",
        delta_color="off",
    )

with col2:
    st.metric(
        "Ruturas 14H / 18H",
        f"{metrics['checkpoint_14_count']:,} / {metrics['checkpoint_18_count']:,}",
        delta=f"{metrics['unknown_checkpoint_count']:,} sem hora" if metrics["unknown_checkpoint_count"] else None,
        delta_color="off",
    )

with col3:
    st.metric(
        "Taxa de Resolução",
        f"{analytics.resolution_rate:.1f}%",
        delta=f"{metrics['unresolved_count']:,} não repostas",
        delta_color="inverse",
    )

with col4:
    st.metric(
        "Seções Afetadas",
        f"{metrics['sections_affected']:,}",
        delta=f"{metrics['distinct_products']:,} produtos",
        delta_color="off",
    )

st.divider()

# --- Weekly trend ---
st.subheader("📈 Evolução Semanal")
trend = analytics.weekly_trend
if len(trend) > 0:
    fig_trend = go.Figure(
        data=[
            go.Bar(x=trend["week_label"], y=trend["checkpoint_14_count"], name="Ruturas 14H", marker_color="#3498db"),
            go.Bar(x=trend["week_label"], y=trend["checkpoint_18_count"], name="Ruturas 18H", marker_color="#e74c3c"),
            go.Scatter(
                x=trend["week_label"],
                y=trend["unresolved_count"],
                name="Não repostas",
                mode="lines+markers",
                marker_color="#2c3e50",
            ),
        ]
    )
    fig_trend.update_layout(
        barmode="group",
        height=350,
        margin=dict(t=20, b=20, l=20, r=20),
        legend=dict(orientation="h", yanchor="bottom", y=-0.3),
    )
    st.plotly_chart(fig_trend, use_container_width=True)
else:
    st.info("Sem dados semanais")

# --- Two Column Layout ---
left_col, right_col = st.columns([2, 1])

with left_col:
    st.subheader("🚨 Produtos Mais Afetados")
    products = analytics.product_rollup
    if len(products) > 0:
        display_df = products[
            ["product_code", "product_description", "checkpoint_14_count", "checkpoint_18_count", "unresolved_count", "sections_affected"]
        ].copy()
        display_df.columns = ["Produto", "Descrição", "14H", "18H", "Não Repostos", "Seções"]
        st.dataframe(display_df, use_container_width=True, hide_index=True)
    else:
        st.info("Nenhum produto afetado")

    st.subheader("🏷️ Produtos Críticos (Qtd. em Falta)")
    critical = analytics.critical_products
    if len(critical) > 0:
        critical_display = critical.copy()
        critical_display.columns = ["Produto", "Descrição", "Qtd. Falta"]
        st.dataframe(
            critical_display,
            use_container_width=True,
            hide_index=True,
            column_config={"Qtd. Falta": st.column_config.NumberColumn(format="%.2f")},
        )

with right_col:
    st.subheader("📊 Tipologias")
    types = analytics.type_distribution
    if len(types) > 0:
        fig_types = go.Figure(
            data=[go.Pie(labels=types["category"], values=types["count"], hole=0.4)]
        )
        fig_types.update_layout(
            height=300,
            margin=dict(t=20, b=20, l=20, r=20),
            legend=dict(orientation="h", yanchor="bottom", y=-0.4),
        )
        st.plotly_chart(fig_types, use_container_width=True)

    st.subheader("📦 Indicadores de Stock")
    stock = analytics.stock_indicators
    st.markdown(
        f"""
- Sem stock CT: **{stock.zero_primary:,}**
- Sem stock FF: **{stock.zero_secondary:,}**
- Em trânsito FF → CT: **{stock.in_transit:,}**
- Sem stock em lado nenhum: **{stock.no_stock_anywhere:,}**
"""
    )

st.divider()

# --- Sections ---
st.subheader("🏭 Seções Mais Afetadas")
sections = analytics.section_rollup
if len(sections) > 0:
    by_section = sections.sort_values("count", ascending=True)
    fig_sections = go.Figure(
        data=[
            go.Bar(
                x=by_section["count"],
                y=[s or "(sem seção)" for s in by_section["section"]],
                orientation="h",
                marker_color="#e67e22",
            )
        ]
    )
    fig_sections.update_layout(
        height=350,
        margin=dict(t=20, b=20, l=20, r=20),
        xaxis_title="Ruturas",
    )
    st.plotly_chart(fig_sections, use_container_width=True)

# --- Data Quality Section ---
st.divider()
st.subheader("🔧 Qualidade dos Dados")
quality = assess_batch_quality(filtered, "Ruturas")
if quality.issues:
    for issue in quality.issues:
        icon = "🔴" if issue.severity == "critical" else "🟡" if issue.severity == "warning" else "🔵"
        st.markdown(f"{icon} **{issue.column}**: {issue.description}")
else:
    st.markdown("✅ Sem problemas encontrados")

# --- Footer ---
st.divider()
st.caption(
    f"Ruturas guardadas: {len(records):,} | Filtradas: {len(filtered):,} | "
    f"Correspondência 14H/18H {'por semana' if config.week_scoped_matching else 'sem semana'}"
)
logger.debug("Rendered dashboard for %d of %d records", len(filtered), len(records))
