"""
app.py
Streamlit IPTV Manager (owner / partner dashboards).
Run: streamlit run app.py
"""

from __future__ import annotations

import streamlit as st

import csv_codec
import db
import metrics
import utils
from activity import ActivityLog
from auth import LOGIN_ERROR, AuthGate
from config import settings
from errors import IPTVError, StorageUnavailable
from models import RENEWAL_DAYS, STATUS_FILTER_OPTIONS, STATUSES, PlanDefinition
from plans import PlanCatalog, get_price
from repository import ClientRepository

st.set_page_config(page_title="IPTV Manager", page_icon="📺", layout="wide")


@st.cache_resource
def init_once() -> AuthGate:
    settings.configure_logging()
    db.init_db()
    return AuthGate.from_settings()


def require_login():
    if "session" not in st.session_state:
        st.session_state.session = None
    if "busy" not in st.session_state:
        st.session_state.busy = set()


def logout():
    unsubscribe = st.session_state.pop("unsubscribe", None)
    if unsubscribe:
        unsubscribe()
    for key in ("session", "repo", "edit_client_id"):
        st.session_state.pop(key, None)
    st.session_state.password = ""


def get_repo() -> ClientRepository:
    if "repo" not in st.session_state:
        repo = ClientRepository(st.session_state.session)
        st.session_state.repo = repo
        st.session_state.unsubscribe = repo.subscribe()
    return st.session_state.repo


def _submit_login(gate: AuthGate):
    session = gate.login(st.session_state.get("password", ""))
    if session is None:
        st.session_state.login_error = LOGIN_ERROR
        st.session_state.password = ""
    else:
        st.session_state.login_error = None
        st.session_state.session = session


def login_screen(gate: AuthGate):
    st.title("📺 IPTV Manager")
    st.caption("Sistema de Gestão Profissional")

    col1, _ = st.columns([1, 1])
    with col1:
        st.subheader("🔐 Acesso Restrito")
        st.text_input("Senha de Acesso", type="password", key="password")
        st.button("Entrar no Sistema", type="primary", on_click=_submit_login, args=(gate,))
        if st.session_state.get("login_error"):
            st.error(st.session_state.login_error)


def run_action(name: str, action, success: str | None = None):
    """Run a repository action with an advisory in-progress flag."""
    busy = st.session_state.busy
    if name in busy:
        st.warning("Operação em andamento...")
        return None
    busy.add(name)
    try:
        result = action()
    except IPTVError as e:
        st.error(str(e))
        return None
    finally:
        busy.discard(name)
    if success:
        st.success(success)
    return result


# ---------- Pages ----------

def dashboard_page(repo: ClientRepository):
    st.header(f"📊 Dashboard {st.session_state.session.label}")

    today = utils.today_local()
    m = metrics.compute_metrics(repo.clients, today)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Clientes Ativos", m.active)
    c2.metric("Receita Mensal", utils.format_money(m.revenue))
    c3.metric("Total Créditos", utils.format_money(m.credits))
    c4.metric("Vencendo", m.expiring)

    st.divider()

    left, right = st.columns(2)
    with left:
        st.subheader("Status dos clientes")
        st.bar_chart(metrics.status_breakdown(repo.clients), x="status", y="count")
        st.subheader("Planos (ativos)")
        st.dataframe(metrics.plan_breakdown(repo.clients), use_container_width=True, hide_index=True)
    with right:
        st.subheader("Atividades Recentes")
        entries = repo.log.entries()[:10]
        if entries:
            for e in entries:
                st.write(f"**{e.description}**  \n{e.timestamp}")
        else:
            st.caption("Nenhuma atividade registrada.")


def client_form(repo: ClientRepository, existing=None):
    catalog = PlanCatalog(st.session_state.session)
    plan_names = catalog.names()
    today = utils.today_local()

    if existing:
        st.subheader(f"✏️ Editar Cliente (ID: {existing.id})")
        if existing.plan not in plan_names:
            plan_names.append(existing.plan)
    else:
        st.subheader("➕ Adicionar Cliente")

    col1, col2, col3 = st.columns(3)
    with col1:
        name = st.text_input("Nome", value=existing.name if existing else "")
        phone = st.text_input("Telefone", value=existing.phone if existing else "")
        mac = st.text_input("MAC", value=existing.mac_address if existing else "")
    with col2:
        plan = st.selectbox(
            "Plano",
            options=plan_names,
            index=plan_names.index(existing.plan) if existing else 0,
        )
        activation = st.date_input("Ativação", value=existing.activation_date if existing else today)
        expiry = st.date_input(
            "Vencimento",
            value=existing.expiry_date if existing else utils.add_days(activation, RENEWAL_DAYS),
        )
    with col3:
        status = st.selectbox(
            "Status",
            options=list(STATUSES),
            index=list(STATUSES).index(existing.status) if existing else 0,
        )
        credits = st.number_input("Créditos", min_value=0.0, step=1.0, value=float(existing.credits) if existing else 0.0)
        monthly_value = st.number_input(
            "Valor mensal",
            min_value=0.0,
            step=1.0,
            value=float(existing.monthly_value) if existing else get_price(plan),
        )
    notes = st.text_area("Notas", value=existing.notes if existing else "")

    if st.button("Salvar", type="primary"):
        if not name.strip():
            st.error("Nome é obrigatório.")
            return
        fields = {
            "name": name,
            "phone": phone,
            "plan": plan,
            "mac_address": mac,
            "activation_date": activation,
            "expiry_date": expiry,
            "status": status,
            "credits": credits,
            "monthly_value": monthly_value,
            "notes": notes,
        }
        if existing:
            done = run_action("edit", lambda: repo.update(existing.with_changes(**fields)) or True)
        else:
            done = run_action("add", lambda: repo.create(fields))
        if done:
            st.session_state.edit_client_id = None
            st.rerun()


def client_actions(repo: ClientRepository, client):
    st.subheader(f"Ações: {client.name}")
    days, label = metrics.expiry_label(client)
    st.write(
        f"Plano **{client.plan}** | Status **{client.status}** | "
        f"Vence em **{utils.format_date_br(client.expiry_date)}** ({days} dias, {label}) | "
        f"Créditos **{utils.format_money(client.credits)}**"
    )

    c1, c2, c3, c4, c5 = st.columns(5)
    with c1:
        if st.button("Editar"):
            st.session_state.edit_client_id = client.id
            st.rerun()
    with c2:
        if st.button("Alternar status"):
            if run_action("toggle", lambda: repo.toggle_status(client.id)):
                st.rerun()
    with c3:
        if st.button("Renovar (+30 dias)"):
            if run_action("renew", lambda: repo.renew(client.id)):
                st.rerun()
    with c4:
        delta = st.number_input("Ajustar créditos", step=5.0, value=0.0)
        if st.button("Aplicar"):
            if run_action("credits", lambda: repo.adjust_credits(client.id, delta) is not None):
                st.rerun()
    with c5:
        st.link_button("WhatsApp", utils.whatsapp_link(client.name, client.phone, client.expiry_date))
        confirm = st.checkbox("Confirmar exclusão", value=False, key="del_confirm")
        if st.button("Excluir", disabled=not confirm):
            if run_action("delete", lambda: repo.delete(client.id) or True, "Cliente excluído."):
                st.rerun()


def clients_page(repo: ClientRepository):
    st.header("👥 Clientes")

    with st.sidebar:
        st.subheader("Busca e filtros")
        search = st.text_input("Buscar (nome/telefone/MAC)")
        status_filter = st.selectbox("Status", list(STATUS_FILTER_OPTIONS), index=0)
        expiring_only = st.checkbox("Somente vencendo (7 dias)")

    visible = metrics.filter_clients(repo.clients, search, status_filter, expiring_only)
    st.session_state.visible_clients = visible
    st.dataframe(metrics.clients_frame(visible), use_container_width=True, hide_index=True)
    st.caption(f"{len(visible)} de {len(repo.clients)} clientes")

    st.divider()

    by_id = {c.id: c for c in visible}
    selected = st.selectbox(
        "Selecionar cliente",
        options=[None] + list(by_id),
        format_func=lambda i: "(nenhum)" if i is None else f"{by_id[i].name} - ID {i}",
    )
    if selected is not None:
        client_actions(repo, by_id[selected])

    st.divider()

    edit_id = st.session_state.get("edit_client_id")
    existing = next((c for c in repo.clients if c.id == edit_id), None) if edit_id else None
    if existing:
        client_form(repo, existing)
        if st.button("Cancelar edição"):
            st.session_state.edit_client_id = None
            st.rerun()
    else:
        client_form(repo)


def import_export_page(repo: ClientRepository):
    scope = st.session_state.session.scope
    st.header(f"📁 Importar / Exportar - {scope.upper()}")

    st.subheader("Importar CSV")
    st.caption("Nome, Telefone, Plano, MAC, Ativação, Vencimento, Status, Créditos (datas YYYY-MM-DD)")
    st.download_button(
        "Baixar Template",
        data=csv_codec.template_csv().encode("utf-8"),
        file_name="template_clientes.csv",
        mime="text/csv",
    )
    uploaded = st.file_uploader("Selecionar Arquivo CSV", type=["csv"])
    if uploaded is not None and st.button("Importar", type="primary"):
        count = run_action("import", lambda: repo.bulk_import(uploaded.getvalue()))
        if count is not None:
            st.success(f"{count} clientes importados com sucesso!")

    st.divider()

    visible = st.session_state.get("visible_clients", repo.clients)
    st.subheader("Exportar")
    st.caption(f"{len(visible)} clientes (filtro atual)")
    st.download_button(
        "Exportar CSV",
        data=repo.export_csv(visible).encode("utf-8"),
        file_name=csv_codec.export_filename(scope, "csv"),
        mime="text/csv",
        on_click=repo.record_export,
        args=("CSV", len(visible)),
    )
    st.download_button(
        "Exportar Relatório",
        data=repo.export_report(visible).encode("utf-8"),
        file_name=csv_codec.export_filename(scope, "html"),
        mime="text/html",
        on_click=repo.record_export,
        args=("relatório", len(visible)),
    )


def plans_page():
    st.header("📦 Planos e Preços")
    catalog = PlanCatalog(st.session_state.session)
    plans = catalog.plans()

    edited = []
    for i, p in enumerate(plans):
        with st.container(border=True):
            c1, c2, c3 = st.columns([2, 1, 1])
            name = c1.text_input("Nome do Plano", value=p.name, key=f"plan_name_{i}")
            price = c2.number_input("Preço Mensal (R$)", min_value=0.0, step=0.01, value=float(p.price), key=f"plan_price_{i}")
            if c3.button("Remover", key=f"plan_remove_{i}", disabled=len(plans) <= 1):
                if run_action("plans", lambda: catalog.remove(i)):
                    st.rerun()
            description = st.text_area("Descrição", value=p.description, key=f"plan_desc_{i}")
            edited.append(PlanDefinition(name, price, description))

    c1, c2 = st.columns(2)
    if c1.button("Adicionar Novo Plano"):
        if run_action("plans", lambda: catalog.save(edited) and catalog.add(PlanDefinition("Novo plano", 0.0, ""))):
            st.rerun()
    if c2.button("Salvar Planos", type="primary"):
        run_action("plans", lambda: catalog.save(edited), "Planos salvos.")


def activity_page(repo: ClientRepository):
    st.header("🕑 Atividades")
    log: ActivityLog = repo.log
    entries = log.entries()
    if entries:
        st.dataframe(
            [{"quando": e.timestamp, "tipo": e.kind, "descrição": e.description, "cliente": e.client_id} for e in entries],
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("Nenhuma atividade registrada.")
    if st.button("Limpar atividades"):
        log.clear()
        st.rerun()


def settings_page(repo: ClientRepository):
    st.header("⚙️ Configurações")

    results = settings.validate_all()
    for e in results["errors"]:
        st.error(e)
    for w in results["warnings"]:
        st.warning(w)

    st.subheader("Dados de exemplo")
    st.caption("Insere 3 clientes de exemplo (adiciona novas linhas a cada execução).")
    if st.button("Inserir dados de exemplo"):
        run_action("sample", repo.seed_sample_data, "Dados de exemplo inseridos.")
        st.rerun()


def main_app():
    session = st.session_state.session
    st.sidebar.title("📺 IPTV Manager")
    st.sidebar.caption(f"Conectado como: {session.label}")

    repo = get_repo()
    try:
        repo.reload()
    except StorageUnavailable as e:
        st.error(f"Erro ao carregar dados: {e}")
        if st.button("Tentar Novamente"):
            st.rerun()
        return

    pages = ["Dashboard", "Clientes", "Importar/Exportar", "Planos", "Atividades", "Configurações"]
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navegar", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Sair"):
        logout()
        st.rerun()

    if st.session_state.page == "Dashboard":
        dashboard_page(repo)
    elif st.session_state.page == "Clientes":
        clients_page(repo)
    elif st.session_state.page == "Importar/Exportar":
        import_export_page(repo)
    elif st.session_state.page == "Planos":
        plans_page()
    elif st.session_state.page == "Atividades":
        activity_page(repo)
    elif st.session_state.page == "Configurações":
        settings_page(repo)


# --------- App entry ---------

def run():
    gate = init_once()
    require_login()

    if st.session_state.session is None:
        login_screen(gate)
        return

    main_app()


if __name__ == "__main__":
    run()
