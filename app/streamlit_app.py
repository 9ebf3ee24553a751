"""Streamlit UI for the Visionary creative studio.

Features:
- Sign-in gate backed by the managed platform
- Image, video, text, thumbnail, sketch and chat tools (Gemini through the proxy)
- Dashboard with the recent generation feed and Plotly charts
- Internal inventory module (items, loans, loan vouchers, logins, links, admin data)
- Account settings (password update, sign-out)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import httpx
import streamlit as st
from dotenv import load_dotenv
from google.genai import errors as genai_errors

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from prompts.templates import (
    CAMERA_MOTIONS,
    DEFAULT_LANGUAGE,
    LANGUAGES,
    PERSONAS,
    PERSONAS_BY_ID,
    THUMBNAIL_TEXT_STYLES,
    TONES,
    VIDEO_ASPECT_RATIOS,
    VIDEO_DURATIONS,
)
from studio.analytics import InventoryDashboard, feed_records, generation_counts, link_categories
from studio.auth import AuthSession
from studio.canvas import DrawingCanvas, strokes_from_canvas_json
from studio.chat import ChatBot
from studio.config import Settings
from studio.generation import GenerationError, ProxyClient
from studio.history import ContentHistory, format_timestamp
from studio.image_gen import ImageGenerator, ImageMode
from studio.imaging import create_comparison_image, data_url_to_bytes, to_data_url
from studio.inventory import (
    ITEM_STATUSES,
    CompanyDataRepository,
    CreditCardRepository,
    DashboardConfigStore,
    ItemRepository,
    LinkRepository,
    LoanRepository,
    LoanVoucherService,
    LoginRepository,
    PhoneContractRepository,
    ProfileDirectory,
    visible_pages,
)
from studio.models import ASPECT_RATIOS, AppView, ContentType, ContextOption, StyleOption
from studio.platform import PlatformClient, PlatformError, normalize_storage_url
from studio.sketch import SketchService
from studio.text_engine import PLATFORMS, TextEngine
from studio.thumbnail import ThumbnailEngine, ThumbnailSpec
from studio.video import VideoMode, VideoStudio

load_dotenv()
logger = logging.getLogger(__name__)

SERVICE_ERRORS = (GenerationError, PlatformError, httpx.HTTPError, ValueError)
SKETCH_ERRORS = (GenerationError, genai_errors.APIError, ValueError)

# ============================================================================
# Page config
# ============================================================================

st.set_page_config(
    page_title="Visionary Studio",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    div[data-testid="metric-container"] {
        background: linear-gradient(135deg, #135bec22, #764ba222);
        border: 1px solid #e0e0e0;
        border-radius: 10px;
        padding: 12px;
    }
    section[data-testid="stSidebar"] > div { padding-top: 1rem; }
</style>
""", unsafe_allow_html=True)

# ============================================================================
# Session state and services
# ============================================================================

settings = Settings.from_env(dotenv=False)
logging.basicConfig(level=settings.log_level)


def init_session_state():
    defaults = {
        "auth_storage": {},
        "view": AppView.DASHBOARD.value,
        "current_image": None,
        "current_video": None,
        "text_content": "",
        "text_all": {},
        "thumbnail_text": "",
        "thumbnail_background": "",
        "thumbnail_element": "",
        "thumbnail_image": None,
        "sketch_canvas": None,
        "sketch_canvas_key": 0,
        "sketch_result": None,
        "sketch_edits": [],
    }
    for key, val in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = val


def get_services():
    """Per-session platform client, auth holder and tool services."""
    if "platform" not in st.session_state:
        try:
            platform = PlatformClient.from_settings(settings)
        except ValueError as e:
            st.error(str(e))
            st.stop()
        auth = AuthSession(platform, storage=st.session_state["auth_storage"], redirect_url=settings.app_url)
        auth.restore()
        history = ContentHistory(auth)
        proxy = ProxyClient(platform, settings.proxy_function)
        st.session_state["platform"] = platform
        st.session_state["auth"] = auth
        st.session_state["history"] = history
        st.session_state["proxy"] = proxy
        st.session_state["chat"] = ChatBot(proxy, platform=platform, history=history)
        st.session_state["sketch_service"] = SketchService(settings.gemini_api_key)
    return (
        st.session_state["platform"],
        st.session_state["auth"],
        st.session_state["history"],
        st.session_state["proxy"],
    )


def show_image(url: str, **kwargs):
    if url.startswith("data:"):
        st.image(data_url_to_bytes(url), **kwargs)
    else:
        st.image(normalize_storage_url(url, settings.platform_url, settings.platform_public_url), **kwargs)


def uploaded_data_url(uploaded) -> str | None:
    if uploaded is None:
        return None
    return to_data_url(uploaded.getvalue(), uploaded.type or "image/png")


init_session_state()
platform, auth, history, proxy = get_services()

# ============================================================================
# Sign-in gate
# ============================================================================


def render_auth_gate():
    st.title("Visionary Studio")
    st.caption("Sign in to your creative workspace.")

    tab_login, tab_signup, tab_reset = st.tabs(["Sign in", "Create account", "Forgot password"])

    with tab_login:
        with st.form("login_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary")
        if submitted:
            error = auth.sign_in(email, password)
            if error:
                st.error(error.message)
            else:
                st.rerun()

    with tab_signup:
        with st.form("signup_form"):
            full_name = st.text_input("Full name")
            email = st.text_input("Email", key="signup_email")
            password = st.text_input("Password", type="password", key="signup_password")
            submitted = st.form_submit_button("Create account")
        if submitted:
            error = auth.sign_up(email, password, full_name)
            if error:
                st.error(error.message)
            elif auth.is_authenticated:
                st.rerun()
            else:
                st.success("Check your inbox to confirm your email address.")

    with tab_reset:
        with st.form("reset_form"):
            email = st.text_input("Email", key="reset_email")
            submitted = st.form_submit_button("Send reset link")
        if submitted:
            error = auth.reset_password(email)
            if error:
                st.error(error.message)
            else:
                st.success("Password reset email sent.")


if not auth.is_authenticated:
    render_auth_gate()
    st.stop()

# ============================================================================
# Sidebar: navigation
# ============================================================================

with st.sidebar:
    st.markdown("### Visionary Studio")
    st.caption(f"Signed in as **{auth.display_name}**")

    views = [v.value for v in AppView]
    st.session_state["view"] = st.radio(
        "Navigate",
        options=views,
        index=views.index(st.session_state["view"]),
        label_visibility="collapsed",
    )

    st.divider()
    if not settings.gemini_api_key:
        st.caption("GEMINI_API_KEY not set locally: the Sketch studio is unavailable.")
    if st.button("Sign out", use_container_width=True):
        auth.sign_out()
        st.rerun()

view = AppView(st.session_state["view"])

# ============================================================================
# VIEW: Dashboard
# ============================================================================


def render_dashboard():
    st.header(f"Welcome back, {auth.display_name}")

    feed = history.load_dashboard_feed()
    if history.error:
        st.error(history.error)

    counts = generation_counts(feed)
    cols = st.columns(4)
    for col, label in zip(cols, ["IMAGE", "VIDEO", "THUMBNAIL", "SKETCH"]):
        col.metric(label.title() + "s", counts.get(label, 0))

    if not feed:
        st.info("Nothing generated yet. Pick a tool in the sidebar to get started.")
        return

    import pandas as pd
    import plotly.express as px

    df = pd.DataFrame(feed_records(feed))
    daily = df.groupby(["day", "type"]).size().reset_index(name="count")
    fig = px.bar(daily, x="day", y="count", color="type", title="Generations per day")
    fig.update_layout(height=300, margin=dict(t=40, b=20, l=20, r=20))
    st.plotly_chart(fig, use_container_width=True)

    st.subheader("Recent generations")
    grid = st.columns(4)
    for i, item in enumerate(feed[:16]):
        with grid[i % 4]:
            if item.type == "VIDEO" and not item.url.startswith("data:image"):
                st.video(item.url)
            else:
                show_image(item.url, use_container_width=True)
            st.caption(f"{item.type} · {format_timestamp(item.created_at)}")
            if item.title:
                st.caption(item.title[:80])


# ============================================================================
# VIEW: Image generation
# ============================================================================


def render_image_gen():
    st.header("Image Generation")
    generator = ImageGenerator(proxy, history)

    col_form, col_result = st.columns([1, 1])
    with col_form:
        mode = st.radio(
            "Mode",
            options=[m.value for m in ImageMode],
            format_func=lambda m: {"TEXT": "Text to Image", "IMG2IMG": "Image to Image", "EDIT": "Edit"}[m],
            horizontal=True,
        )
        reference = None
        if mode != ImageMode.TEXT.value:
            reference = uploaded_data_url(st.file_uploader("Reference image", type=["png", "jpg", "jpeg", "webp"]))
        prompt = st.text_area("Prompt", height=120, placeholder="A neon-lit city street at night...")
        aspect_ratio = st.selectbox("Aspect ratio", ASPECT_RATIOS)

        if st.button("Generate", type="primary", use_container_width=True):
            with st.spinner("Generating image..."):
                try:
                    st.session_state["current_image"] = generator.generate(prompt, mode, aspect_ratio, reference)
                except SERVICE_ERRORS as e:
                    st.error(f"Generation failed: {e}")

    with col_result:
        current = st.session_state.get("current_image")
        if current:
            show_image(current, use_container_width=True)
            st.download_button(
                "Download", data=data_url_to_bytes(current), file_name="generation.png", mime="image/png"
            )

    render_history_strip(ContentType.IMAGE, "image_url")


def render_history_strip(content_type: ContentType, url_key: str):
    result = history.load_history(content_type, limit=12)
    if not result.success:
        st.error(result.error)
        return
    if not result.data:
        return
    st.subheader("History")
    grid = st.columns(6)
    for i, row in enumerate(result.data):
        with grid[i % 6]:
            if content_type == ContentType.VIDEO:
                st.caption(row.get("prompt") or "Untitled")
                st.video(row[url_key])
            else:
                show_image(row[url_key], use_container_width=True)
            st.caption(format_timestamp(row["created_at"]))
            if st.button("Delete", key=f"del_{content_type.value}_{row['id']}"):
                deleted = history.delete_content(row["id"], content_type)
                if not deleted.success:
                    st.error(deleted.error)
                st.rerun()


# ============================================================================
# VIEW: Video studio
# ============================================================================


def render_video():
    st.header("Video Studio")
    studio = VideoStudio(
        proxy,
        history,
        api_key=settings.gemini_api_key,
        poll_interval=settings.video_poll_interval,
    )

    col_form, col_result = st.columns([1, 1])
    with col_form:
        mode = st.radio(
            "Mode",
            options=[m.value for m in VideoMode],
            format_func=lambda m: "Text to Video" if m == "TEXT" else "Image to Video",
            horizontal=True,
        )
        source = None
        if mode == VideoMode.IMAGE.value:
            source = uploaded_data_url(st.file_uploader("Source image", type=["png", "jpg", "jpeg"]))
        prompt = st.text_area("Prompt", height=120)
        c1, c2, c3 = st.columns(3)
        aspect_ratio = c1.selectbox("Aspect ratio", VIDEO_ASPECT_RATIOS)
        duration = c2.selectbox("Duration", VIDEO_DURATIONS, index=1)
        camera_motion = c3.selectbox("Camera motion", CAMERA_MOTIONS)

        if st.button("Generate video", type="primary", use_container_width=True):
            with st.spinner("Rendering video, this can take a few minutes..."):
                try:
                    st.session_state["current_video"] = studio.generate(
                        prompt, mode, aspect_ratio, duration, camera_motion, source
                    )
                except SERVICE_ERRORS as e:
                    st.error(f"Video generation failed: {e}")

    with col_result:
        if st.session_state.get("current_video"):
            st.video(st.session_state["current_video"])

    render_history_strip(ContentType.VIDEO, "video_url")


# ============================================================================
# VIEW: Text engine
# ============================================================================


def render_text():
    st.header("Text Engine")
    engine = TextEngine(proxy, history)

    col_form, col_result = st.columns([1, 2])
    with col_form:
        platform_name = st.selectbox("Platform", PLATFORMS)
        topic = st.text_input("Topic", placeholder="The impact of Web3 on digital art")
        audience = st.text_input("Target audience", placeholder="Creative Professionals")
        tone = st.selectbox("Tone", TONES)
        language = st.selectbox("Sprache / Language", LANGUAGES, index=LANGUAGES.index(DEFAULT_LANGUAGE))
        use_trends = st.toggle("Use latest trends (Google Search)")

        try:
            if st.button("Generate", type="primary", use_container_width=True):
                with st.spinner("Writing..."):
                    st.session_state["text_content"] = engine.generate(
                        platform_name, topic, audience, tone, language, use_trends
                    )
            if st.button("Continue writing", use_container_width=True):
                with st.spinner("Continuing..."):
                    st.session_state["text_content"] = engine.continue_text(
                        platform_name, st.session_state["text_content"], topic, language
                    )
            if st.button("Generate for all platforms", use_container_width=True):
                with st.spinner("Writing for every platform..."):
                    st.session_state["text_all"] = engine.generate_all(topic, audience, tone, language, use_trends)
                    st.session_state["text_content"] = st.session_state["text_all"].get("Blog Post", "")
        except SERVICE_ERRORS as e:
            st.error(f"Error generating content: {e}")

    with col_result:
        all_content = st.session_state.get("text_all") or {}
        if all_content:
            tabs = st.tabs(list(all_content))
            for tab, (name, text) in zip(tabs, all_content.items()):
                with tab:
                    st.markdown(text)
        else:
            st.session_state["text_content"] = st.text_area(
                "Content", value=st.session_state["text_content"], height=420
            )

    result = history.load_history(ContentType.TEXT, limit=20)
    if result.success and result.data:
        st.subheader("History")
        for row in result.data:
            with st.expander(f"{row.get('platform') or 'Text'} · {row.get('topic') or ''} · "
                             f"{format_timestamp(row['created_at'])}"):
                st.markdown(row["content"])


# ============================================================================
# VIEW: Thumbnail engine
# ============================================================================


def render_thumbnail():
    st.header("Thumbnail Engine")
    engine = ThumbnailEngine(proxy, history)

    topic = st.text_input("Content context (video topic)")

    col_bg, col_el, col_text = st.columns(3)
    with col_bg:
        st.subheader("Background")
        if st.button("Suggest background"):
            try:
                st.session_state["thumbnail_background"] = engine.suggest_background(topic)
            except SERVICE_ERRORS as e:
                st.error(str(e))
        background = st.text_area("Background description", value=st.session_state["thumbnail_background"])
        background_image = uploaded_data_url(st.file_uploader("Background image", type=["png", "jpg", "jpeg"]))
    with col_el:
        st.subheader("Main element")
        if st.button("Suggest element"):
            try:
                st.session_state["thumbnail_element"] = engine.suggest_element(topic)
            except SERVICE_ERRORS as e:
                st.error(str(e))
        element = st.text_area("Element description", value=st.session_state["thumbnail_element"])
        element_image = uploaded_data_url(st.file_uploader("Element image", type=["png", "jpg", "jpeg"]))
    with col_text:
        st.subheader("Text overlay")
        if st.button("Suggest text"):
            try:
                st.session_state["thumbnail_text"] = engine.suggest_text(topic)
            except SERVICE_ERRORS as e:
                st.error(str(e))
        text_overlay = st.text_input("Overlay text", value=st.session_state["thumbnail_text"])
        text_style = st.selectbox("Font style", THUMBNAIL_TEXT_STYLES)
        aspect_ratio = st.selectbox("Aspect ratio", ASPECT_RATIOS, index=1)

    spec = ThumbnailSpec(
        topic=topic,
        aspect_ratio=aspect_ratio,
        background_prompt=background,
        background_image=background_image,
        element_prompt=element,
        element_image=element_image,
        text_overlay=text_overlay,
        text_style=text_style,
    )
    if st.button("Generate thumbnail", type="primary"):
        with st.spinner("Composing thumbnail..."):
            try:
                st.session_state["thumbnail_image"] = engine.generate(spec)
            except SERVICE_ERRORS as e:
                st.error(str(e))

    if st.session_state.get("thumbnail_image"):
        show_image(st.session_state["thumbnail_image"], use_container_width=True)

    render_history_strip(ContentType.THUMBNAIL, "image_url")


# ============================================================================
# VIEW: Sketch studio
# ============================================================================


def render_sketch():
    from streamlit_drawable_canvas import st_canvas

    st.header("Sketch Studio")
    service: SketchService = st.session_state["sketch_service"]

    canvas: DrawingCanvas | None = st.session_state.get("sketch_canvas")
    if canvas is None:
        canvas = DrawingCanvas(800, 450)
        st.session_state["sketch_canvas"] = canvas

    col_canvas, col_controls = st.columns([3, 1])
    with col_controls:
        canvas.tool = st.radio("Tool", ["pen", "eraser"], format_func=str.title, horizontal=True)
        canvas.line_width = st.slider("Brush size", 1, 20, canvas.line_width)
        b1, b2, b3 = st.columns(3)
        if b1.button("Undo", disabled=not canvas.can_undo):
            canvas.undo()
            st.session_state["sketch_canvas_key"] += 1
            st.rerun()
        if b2.button("Redo", disabled=not canvas.can_redo):
            canvas.redo()
            st.session_state["sketch_canvas_key"] += 1
            st.rerun()
        if b3.button("Clear"):
            canvas.clear()
            st.session_state["sketch_canvas_key"] += 1
            st.rerun()

        context = st.selectbox("Subject", [c.value for c in ContextOption])
        style = st.selectbox("Style", [s.value for s in StyleOption])
        aspect_ratio = st.selectbox("Aspect ratio", ASPECT_RATIOS, index=1, key="sketch_ar")
        additional = st.text_input("Additional details")
        generate = st.button("Render sketch", type="primary", use_container_width=True,
                             disabled=not service.available)

    with col_canvas:
        result = st_canvas(
            stroke_width=canvas.line_width,
            stroke_color="#ffffff" if canvas.tool == "eraser" else "#000000",
            background_image=canvas.image,
            height=canvas.size[1],
            width=canvas.size[0],
            drawing_mode="freedraw",
            key=f"sketch_{st.session_state['sketch_canvas_key']}",
        )
        strokes = strokes_from_canvas_json(result.json_data)
        if strokes:
            # Fold new widget strokes into the canvas history and reset the widget.
            for stroke in strokes:
                canvas.replay(stroke)
            st.session_state["sketch_canvas_key"] += 1
            st.rerun()

    if generate:
        snapshot = canvas.snapshot()
        with st.spinner("Rendering your sketch..."):
            try:
                image = service.generate_image_from_sketch(snapshot, context, style, aspect_ratio, additional)
            except SKETCH_ERRORS as e:
                st.error(str(e))
            else:
                st.session_state["sketch_result"] = image
                st.session_state["sketch_edits"] = []
                saved = history.save_sketch(snapshot, image, context, style)
                if not saved.success:
                    st.error(saved.error)

    image = st.session_state.get("sketch_result")
    if image:
        st.subheader("Result")
        comparison = create_comparison_image(canvas.image, image)
        st.image(comparison, use_container_width=True)
        instruction = st.text_input("Refine the result", placeholder="Make the sky stormy")
        if st.button("Apply edit") and instruction:
            with st.spinner("Editing..."):
                try:
                    edited = service.edit_generated_image(image, instruction)
                except SKETCH_ERRORS as e:
                    st.error(str(e))
                else:
                    st.session_state["sketch_result"] = edited
                    st.session_state["sketch_edits"].append(instruction)
                    st.rerun()
        st.download_button(
            "Download", data=data_url_to_bytes(image), file_name="sketch-masterpiece.png", mime="image/png"
        )

    past = history.load_sketch_history()
    if past:
        st.subheader("History")
        grid = st.columns(5)
        for i, row in enumerate(past):
            if not row.get("generated_image_url"):
                continue
            with grid[i % 5]:
                show_image(row["generated_image_url"], use_container_width=True)
                st.caption(f"{row['context']} - {row['style']}")


# ============================================================================
# VIEW: Chat bot
# ============================================================================


def render_chat():
    st.header("AI Chat")
    bot: ChatBot = st.session_state["chat"]

    col_side, col_chat = st.columns([1, 3])
    with col_side:
        persona_ids = [p.id for p in PERSONAS]
        selected = st.radio(
            "Assistant",
            options=persona_ids,
            index=persona_ids.index(bot.persona.id),
            format_func=lambda pid: f":material/{PERSONAS_BY_ID[pid].icon}: {PERSONAS_BY_ID[pid].name}",
        )
        if selected != bot.persona.id:
            bot.switch_persona(selected)
            st.rerun()
        if st.button("New chat", use_container_width=True):
            bot.new_chat()
            st.rerun()

        sessions = history.load_chat_sessions(limit=20)
        if sessions.success and sessions.data:
            st.caption("Recent chats")
            for session in sessions.data:
                if st.button(session.get("title") or "Untitled Chat", key=f"chat_{session['id']}",
                             use_container_width=True):
                    bot.load_session(session)
                    st.rerun()

    with col_chat:
        st.caption(bot.persona.desc)
        for message in bot.messages:
            with st.chat_message("user" if message.role == "user" else "assistant"):
                st.markdown(message.text)

        text = st.chat_input(f"Message {bot.persona.name}...")
        if text:
            with st.spinner("Thinking..."):
                bot.send(text)
            st.rerun()


# ============================================================================
# VIEW: Inventory
# ============================================================================

TABLE_FIELDS: dict[str, list[str]] = {
    "Logins": ["name", "website", "benutzername", "passwort", "notizen"],
    "Handyverträge": ["handynummer", "anbieter", "tarif", "mitarbeiter", "kosten_monatlich", "laufzeit_bis"],
    "Kreditkarten": ["name", "karteninhaber", "letzte_vier", "ablaufdatum", "notizen"],
    "Firmendaten": ["kategorie", "bezeichnung", "wert", "sort_order"],
    "Interne Links": ["titel", "url", "kategorie", "beschreibung", "sort_order"],
}

TABLE_REPOSITORIES = {
    "Logins": LoginRepository,
    "Handyverträge": PhoneContractRepository,
    "Kreditkarten": CreditCardRepository,
    "Firmendaten": CompanyDataRepository,
    "Interne Links": LinkRepository,
}


def _coerce(field: str, value: str):
    if field == "sort_order":
        return int(value or 0)
    return value or None


def render_table_page(page: str):
    import pandas as pd

    repo = TABLE_REPOSITORIES[page](platform)
    fields = TABLE_FIELDS[page]
    rows = repo.fetch_all()
    if rows:
        st.dataframe(pd.DataFrame(rows)[[f for f in fields if f in rows[0]]], use_container_width=True,
                     hide_index=True)
    else:
        st.info("No entries yet.")

    with st.expander("Add entry"):
        with st.form(f"add_{page}"):
            values = {field: st.text_input(field.replace("_", " ").title()) for field in fields}
            if st.form_submit_button("Save"):
                repo.create({k: _coerce(k, v) for k, v in values.items()})
                st.rerun()

    if rows:
        with st.expander("Edit or delete"):
            labels = {row["id"]: str(row.get(fields[0]) or row["id"]) for row in rows}
            row_id = st.selectbox("Entry", list(labels), format_func=labels.get, key=f"pick_{page}")
            row = next(r for r in rows if r["id"] == row_id)
            with st.form(f"edit_{page}"):
                values = {
                    field: st.text_input(field.replace("_", " ").title(), value=str(row.get(field) or ""))
                    for field in fields
                }
                c1, c2 = st.columns(2)
                if c1.form_submit_button("Update"):
                    repo.update(row_id, {k: _coerce(k, v) for k, v in values.items()})
                    st.rerun()
                if c2.form_submit_button("Delete"):
                    repo.delete(row_id)
                    st.rerun()


def render_inventory_dashboard():
    store = DashboardConfigStore(platform)
    user_id = auth.require_user()["id"]
    config = store.load(user_id)

    items = ItemRepository(platform).fetch_all()
    links = LinkRepository(platform).fetch_all()
    logins = LoginRepository(platform).fetch_all()
    loans = LoanRepository(platform).fetch()
    vouchers = LoanVoucherService(platform).fetch_active()
    dashboard = InventoryDashboard.build(config, items, links, vouchers, loans, logins)

    if config.show_inventory_stats:
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Gesamt", dashboard.stats.total)
        c2.metric("Vorhanden", dashboard.stats.available)
        c3.metric("Ausgeliehen", dashboard.stats.loaned)
        c4.metric("Defekt / Fehlt", dashboard.stats.defective)

    left, right = st.columns(2)
    with left:
        if config.show_links:
            st.subheader("Interne Links")
            for category, group in dashboard.links:
                st.markdown(f"**{category}**")
                for link in group:
                    st.markdown(f"- [{link.get('titel')}]({link.get('url')})")
        if dashboard.pinned:
            st.subheader("Angepinnte Logins")
            for login in dashboard.pinned:
                st.markdown(f"- **{login.get('name')}** {login.get('website') or ''}")
    with right:
        if config.show_calendar:
            st.subheader("Anstehende Abholungen")
            if not dashboard.upcoming:
                st.caption("Keine Abholungen in den nächsten 14 Tagen.")
            for voucher in dashboard.upcoming:
                who = (voucher.get("profile") or {}).get("full_name") or voucher.get("extern_name") or "?"
                st.markdown(f"- {voucher['abholzeit'][:16].replace('T', ' ')} · {who}")
        if config.show_loans:
            st.subheader(f"Aktive Ausleihen ({dashboard.active_loan_count})")
            for loan in dashboard.loans:
                item = loan.get("item") or {}
                person = (loan.get("profile") or {}).get("full_name") or loan.get("mitarbeiter_name") or "?"
                st.markdown(f"- {item.get('geraet')} {item.get('modell') or ''} → {person}")

    with st.expander("Dashboard anpassen"):
        with st.form("dashboard_config"):
            config.show_inventory_stats = st.checkbox("Inventar-Statistik", value=config.show_inventory_stats)
            config.show_links = st.checkbox("Links", value=config.show_links)
            config.show_calendar = st.checkbox("Kalender", value=config.show_calendar)
            config.show_loans = st.checkbox("Ausleihen", value=config.show_loans)
            categories = link_categories(links)
            chosen = st.multiselect(
                "Link-Kategorien (leer = alle)",
                categories,
                default=[c for c in (config.link_categories or []) if c in categories],
            )
            config.link_categories = chosen or None
            login_labels = {login["id"]: login.get("name") or login["id"] for login in logins}
            config.pinned_login_ids = st.multiselect(
                "Angepinnte Logins",
                list(login_labels),
                default=[i for i in config.pinned_login_ids if i in login_labels],
                format_func=login_labels.get,
            )
            if st.form_submit_button("Speichern"):
                store.save(user_id, config)
                st.rerun()


def render_items_page():
    import pandas as pd

    repo = ItemRepository(platform)
    items = repo.fetch_all()
    if items:
        columns = [c for c in ["px_nummer", "geraet", "modell", "status", "kategorie"] if c in items[0]]
        st.dataframe(pd.DataFrame(items)[columns], use_container_width=True, hide_index=True)

    with st.expander("Neues Gerät"):
        with st.form("add_item"):
            geraet = st.text_input("Gerät")
            modell = st.text_input("Modell")
            px_nummer = st.text_input("PX-Nummer")
            status = st.selectbox("Status", ITEM_STATUSES)
            photo = st.file_uploader("Bild", type=["png", "jpg", "jpeg", "webp"])
            if st.form_submit_button("Anlegen"):
                entry = {"geraet": geraet, "modell": modell or None, "px_nummer": px_nummer or None,
                         "status": status}
                if photo is not None:
                    entry["bild_url"] = repo.upload_image(photo.getvalue(), photo.name, px_nummer, photo.type)
                repo.create(entry)
                st.rerun()

    if items:
        with st.expander("Status ändern / löschen"):
            labels = {i["id"]: f"{i.get('px_nummer') or ''} {i.get('geraet')}" for i in items}
            item_id = st.selectbox("Gerät", list(labels), format_func=labels.get)
            status = st.selectbox("Neuer Status", ITEM_STATUSES, key="item_status")
            c1, c2 = st.columns(2)
            if c1.button("Status setzen"):
                repo.set_status(item_id, status)
                st.rerun()
            if c2.button("Löschen"):
                repo.delete(item_id)
                st.rerun()


def render_loans_page():
    repo = LoanRepository(platform)
    loans = repo.fetch()
    active, past = repo.split(loans)

    st.subheader(f"Aktiv ({len(active)})")
    for loan in active:
        item = loan.get("item") or {}
        person = (loan.get("profile") or {}).get("full_name") or loan.get("mitarbeiter_name") or "?"
        c1, c2 = st.columns([4, 1])
        c1.markdown(f"**{item.get('geraet')}** {item.get('px_nummer') or ''} → {person} "
                    f"(seit {loan.get('ausgeliehen_am')})")
        if c2.button("Zurück", key=f"return_{loan['id']}"):
            repo.return_loan(loan["id"])
            st.rerun()

    with st.expander(f"Vergangene Ausleihen ({len(past)})"):
        for loan in past:
            item = loan.get("item") or {}
            st.markdown(f"- {item.get('geraet')} · {loan.get('ausgeliehen_am')} – {loan.get('zurueck_am')}")

    items = ItemRepository(platform).fetch_all()
    profiles = ProfileDirectory(platform).fetch_all()
    with st.expander("Neue Ausleihe"):
        with st.form("add_loan"):
            item_labels = {i["id"]: f"{i.get('px_nummer') or ''} {i.get('geraet')}" for i in items}
            item_id = st.selectbox("Gerät", list(item_labels), format_func=item_labels.get)
            profile_labels = {p["id"]: p.get("full_name") or p.get("email") for p in profiles}
            profile_id = st.selectbox("Mitarbeiter", list(profile_labels), format_func=profile_labels.get)
            ausgeliehen_am = st.date_input("Ausgeliehen am")
            zweck = st.text_input("Zweck")
            if st.form_submit_button("Ausleihen"):
                repo.create({
                    "item_id": item_id,
                    "profile_id": profile_id,
                    "ausgeliehen_am": ausgeliehen_am.isoformat(),
                    "zweck": zweck or None,
                    "created_by": auth.require_user()["id"],
                })
                st.rerun()


def render_vouchers_page():
    service = LoanVoucherService(platform)
    items = ItemRepository(platform).fetch_all()
    profiles = ProfileDirectory(platform).fetch_all()

    with st.form("add_voucher"):
        st.subheader("Neuer Verleihschein")
        borrower_type = st.radio("Entleiher", ["team", "extern"], horizontal=True)
        profile_labels = {p["id"]: p.get("full_name") or p.get("email") for p in profiles}
        profile_id = st.selectbox("Teammitglied", list(profile_labels), format_func=profile_labels.get)
        extern_name = st.text_input("Externer Name")
        extern_firma = st.text_input("Firma")
        c1, c2 = st.columns(2)
        abholzeit = c1.date_input("Abholung")
        rueckgabezeit = c2.date_input("Rückgabe")
        prozentsatz = st.number_input("Prozentsatz", min_value=0.0, value=10.0)
        available = {i["id"]: f"{i.get('px_nummer') or ''} {i.get('geraet')}" for i in items
                     if i.get("status") == "Vorhanden"}
        chosen = st.multiselect("Geräte", list(available), format_func=available.get)
        if st.form_submit_button("Verleihschein anlegen"):
            header = {
                "borrower_type": borrower_type,
                "profile_id": profile_id if borrower_type == "team" else None,
                "extern_name": extern_name or None,
                "extern_firma": extern_firma or None,
                "abholzeit": abholzeit.isoformat(),
                "rueckgabezeit": rueckgabezeit.isoformat(),
                "prozentsatz": prozentsatz,
                "gesamtkosten": 0,
                "created_by": auth.require_user()["id"],
            }
            service.create(header, [
                {"item_id": item_id, "anschaffungspreis": None, "tagespreis": None, "gesamtpreis": None}
                for item_id in chosen
            ])
            st.rerun()

    st.subheader("Aktive Verleihscheine")
    for voucher in service.fetch_active():
        who = (voucher.get("profile") or {}).get("full_name") or voucher.get("extern_name") or "?"
        with st.expander(f"{who} · {voucher.get('abholzeit', '')[:10]} → {voucher.get('rueckgabezeit', '')[:10]}"):
            for line in voucher["items"]:
                item = line.get("item") or {}
                st.markdown(f"- {item.get('px_nummer') or ''} {item.get('geraet')}")
            if st.button("Erledigt", key=f"done_{voucher['id']}"):
                service.mark_completed(voucher["id"], [line["item_id"] for line in voucher["items"]])
                st.rerun()

    with st.expander("Archiv"):
        for voucher in service.fetch_archive():
            who = (voucher.get("profile") or {}).get("full_name") or voucher.get("extern_name") or "?"
            st.markdown(f"- {who} · erledigt {str(voucher.get('erledigt_am') or '')[:10]} "
                        f"· {len(voucher['items'])} Geräte")


def render_calendar_page():
    import pandas as pd

    vouchers = LoanVoucherService(platform).fetch_active()
    if not vouchers:
        st.info("Keine aktiven Verleihscheine.")
        return
    df = pd.DataFrame([
        {
            "Abholung": v.get("abholzeit"),
            "Rückgabe": v.get("rueckgabezeit"),
            "Entleiher": (v.get("profile") or {}).get("full_name") or v.get("extern_name"),
            "Geräte": len(v["items"]),
        }
        for v in vouchers
    ]).sort_values("Abholung")
    st.dataframe(df, use_container_width=True, hide_index=True)


def render_inventory():
    st.header("Inventar")
    pages = visible_pages(auth.is_admin)
    page = st.radio("Bereich", pages, horizontal=True, label_visibility="collapsed")

    try:
        if page == "Dashboard":
            render_inventory_dashboard()
        elif page == "Inventar":
            render_items_page()
        elif page == "Verleih":
            render_loans_page()
        elif page == "Verleih-Formular":
            render_vouchers_page()
        elif page == "Kalender":
            render_calendar_page()
        else:
            render_table_page(page)
    except (PlatformError, httpx.HTTPError, ValueError) as e:
        st.error(str(e))


# ============================================================================
# VIEW: Settings
# ============================================================================


def render_settings():
    st.header("Settings")
    profile = auth.profile or {}
    st.markdown(f"**Name:** {profile.get('full_name') or '-'}")
    st.markdown(f"**Email:** {(auth.user or {}).get('email') or profile.get('email') or '-'}")
    st.markdown(f"**Role:** {profile.get('role') or 'user'}")

    st.subheader("Change password")
    with st.form("password_form"):
        new_password = st.text_input("New password", type="password")
        confirm = st.text_input("Confirm password", type="password")
        if st.form_submit_button("Update password"):
            if len(new_password) < 6:
                st.error("Password must be at least 6 characters.")
            elif new_password != confirm:
                st.error("Passwords do not match.")
            else:
                error = auth.update_password(new_password)
                if error:
                    st.error(error.message)
                else:
                    st.success("Password updated.")

    st.divider()
    if st.button("Sign out", type="primary"):
        auth.sign_out()
        st.rerun()


# ============================================================================
# Router
# ============================================================================

RENDERERS = {
    AppView.DASHBOARD: render_dashboard,
    AppView.IMAGE_GEN: render_image_gen,
    AppView.VIDEO_STUDIO: render_video,
    AppView.TEXT_ENGINE: render_text,
    AppView.THUMBNAIL_ENGINE: render_thumbnail,
    AppView.SKETCH_STUDIO: render_sketch,
    AppView.CHAT_BOT: render_chat,
    AppView.INVENTORY: render_inventory,
    AppView.SETTINGS: render_settings,
}

RENDERERS[view]()
