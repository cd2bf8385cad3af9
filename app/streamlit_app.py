"""Streamlit client for the AI portrait stylizer.

Pages:
- Home: what the app does
- Train: upload 12-20 photos, pick a trigger word, train a personal model
- Stylize: one photo + an art style via the stylize function
- Result: original vs stylized portrait with download
"""

from __future__ import annotations

import io
import logging
import sys
from pathlib import Path

import streamlit as st
from dotenv import load_dotenv

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from stylizer.config import Settings
from stylizer.imaging import create_comparison_image, open_image
from stylizer.models import IMAGE_REQUIREMENTS, MAX_IMAGES, MIN_IMAGES, ArtStyle
from stylizer.poller import PollTimeoutError, TrainingFailedError
from stylizer.results import NotOwnerError, ResultError, fetch_portrait, load_result
from stylizer.storage import StorageError, create_store
from stylizer.uploader import UploadError, UploadSession, stylize_photo

load_dotenv()
settings = Settings.from_env()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# ============================================================================
# Page config
# ============================================================================

st.set_page_config(
    page_title="AI Portrait Studio",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ============================================================================
# Session state initialization
# ============================================================================


def init_session_state():
    defaults = {
        "store": None,
        "user_id": None,
        "upload": None,
        "uploader_key": 0,
        "stylized_url": None,
    }
    for key, val in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = val


init_session_state()


def get_store():
    if st.session_state["store"] is None:
        try:
            st.session_state["store"] = create_store(settings)
        except ValueError as e:
            st.error(str(e))
            st.info("Tip: set SUPABASE_URL and SUPABASE_ANON_KEY in your environment or .env file.")
            st.stop()
    return st.session_state["store"]


def get_upload() -> UploadSession:
    upload = st.session_state["upload"]
    if upload is None or upload.user_id != st.session_state["user_id"]:
        upload = UploadSession(store=get_store(), user_id=st.session_state["user_id"], settings=settings)
        st.session_state["upload"] = upload
    return upload


# ============================================================================
# Sidebar: account + navigation
# ============================================================================

with st.sidebar:
    st.markdown("### Account")

    if st.session_state["user_id"] is None:
        user_id = get_store().get_user()
        if user_id:
            st.session_state["user_id"] = user_id

    if st.session_state["user_id"]:
        st.caption(f"Signed in as `{st.session_state['user_id']}`")
    else:
        with st.form("login"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            if st.form_submit_button("Sign in", type="primary"):
                try:
                    st.session_state["user_id"] = get_store().sign_in(email, password)
                    st.rerun()
                except StorageError as e:
                    st.error(str(e))

    st.divider()
    page = st.radio("Page", options=["Home", "Train", "Stylize", "Result"], index=0)


def require_login():
    if not st.session_state["user_id"]:
        st.warning("Sign in from the sidebar to continue.")
        st.stop()


# ============================================================================
# Home
# ============================================================================

if page == "Home":
    st.title("AI Portrait Studio")
    st.markdown(
        "Train a personal model from your photos, or turn a single photo into "
        "Ghibli, Simpsons, Disney or Pixar style artwork."
    )
    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Train your model")
        st.write(f"Upload {MIN_IMAGES}-{MAX_IMAGES} photos and pick a trigger word.")
    with col2:
        st.subheader("Quick stylize")
        st.write("One photo, one style, one click.")

# ============================================================================
# Train
# ============================================================================

elif page == "Train":
    require_login()
    upload = get_upload()

    st.title("Create Your AI Portrait Model")
    st.caption(f"Upload {MIN_IMAGES}-{MAX_IMAGES} photos of yourself in different poses and lighting")

    with st.container(border=True):
        st.markdown("**Photo Requirements:**")
        st.markdown("\n".join(f"- {req}" for req in IMAGE_REQUIREMENTS))
        st.markdown(f"Current: **{len(upload.photos)}** / {MIN_IMAGES} required ({MAX_IMAGES} max)")

    files = st.file_uploader(
        "Click to add more photos",
        type=["png", "jpg", "jpeg", "webp"],
        accept_multiple_files=True,
        key=f"photos_{st.session_state['uploader_key']}",
    )
    if files:
        try:
            upload.add_images([(f.name, f.getvalue()) for f in files])
        except UploadError as e:
            st.error(str(e))
        st.session_state["uploader_key"] += 1
        st.rerun()

    # Preview grid
    if upload.photos:
        cols = st.columns(4)
        for i, photo in enumerate(list(upload.photos)):
            with cols[i % 4]:
                st.image(photo.data, caption=f"Training image {i + 1}", use_container_width=True)
                if st.button("Remove", key=f"rm_{i}"):
                    upload.remove_image(i)
                    st.rerun()

    # Trigger word
    st.subheader("Set Your Trigger Word")
    tw_col1, tw_col2 = st.columns([4, 1])
    with tw_col1:
        typed = st.text_input("Trigger word", value=upload.trigger_word, placeholder="PERSON_XYZ123")
        if typed.strip().upper() != upload.trigger_word:
            try:
                upload.set_trigger_word(typed)
            except UploadError as e:
                st.error(str(e))
    with tw_col2:
        if st.button("Generate New"):
            upload.regenerate_trigger_word()
            st.rerun()
    st.caption("This word will be used to identify you in prompts. For example:")
    st.code(f'"A photo of {upload.trigger_word} in a business suit"', language=None)

    if st.button("Start Training", type="primary", disabled=not upload.can_submit, use_container_width=True):
        progress = st.progress(0, text="Uploading training data...")
        try:
            session = upload.submit()
            progress.progress(0, text="Training Model (0%)")
            upload.wait(
                on_progress=lambda pct: progress.progress(
                    min(int(pct), 100) / 100, text=f"Training Model ({round(pct)}%)"
                )
            )
        except (UploadError, TrainingFailedError) as e:
            st.error(str(e))
        except PollTimeoutError:
            st.error("Training is taking longer than expected. Check the Result page later.")
        else:
            progress.progress(1.0, text="Training complete!")
            st.query_params["userId"] = upload.user_id
            st.query_params["triggerWord"] = session.trigger_word
            st.success("Your model is ready. Open the Result page to see your portrait.")

# ============================================================================
# Stylize
# ============================================================================

elif page == "Stylize":
    require_login()
    st.title("Quick Stylize")

    style = st.selectbox(
        "Art style",
        options=[s.value for s in ArtStyle],
        format_func=lambda x: x.title(),
    )
    photo = st.file_uploader("Your photo", type=["png", "jpg", "jpeg", "webp"])

    if st.button("Stylize", type="primary", disabled=photo is None):
        with st.spinner("Writing a prompt and painting your image..."):
            try:
                st.session_state["stylized_url"] = stylize_photo(
                    get_store(), settings, st.session_state["user_id"], photo.getvalue(), style
                )
            except UploadError as e:
                st.error(str(e))

    if st.session_state["stylized_url"]:
        st.image(st.session_state["stylized_url"], caption="Stylized", use_container_width=True)

# ============================================================================
# Result
# ============================================================================

elif page == "Result":
    require_login()
    st.title("Your Stylized Image")

    user_id = st.query_params.get("userId", st.session_state["user_id"])
    trigger_word = st.query_params.get("triggerWord", "")
    if not trigger_word and st.session_state["upload"] is not None:
        trigger_word = st.session_state["upload"].trigger_word
    trigger_word = st.text_input("Trigger word", value=trigger_word).strip().upper()

    if not trigger_word:
        st.info("Train a model first, or enter its trigger word.")
        st.stop()

    with st.spinner("Loading your stylized images..."):
        try:
            result = load_result(get_store(), settings, user_id, trigger_word, st.session_state["user_id"])
            original = fetch_portrait(result.original_url)
            stylized = fetch_portrait(result.stylized_url)
        except NotOwnerError:
            st.error("This result belongs to another account.")
            st.stop()
        except ResultError as e:
            st.error(str(e))
            st.stop()

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Original")
        st.image(original, use_container_width=True)
    with col2:
        st.subheader("Stylized")
        st.image(stylized, use_container_width=True)

    dl_col1, dl_col2 = st.columns(2)
    with dl_col1:
        st.download_button(
            "Download",
            data=stylized,
            file_name="stylized-image.jpg",
            mime="image/jpeg",
            use_container_width=True,
        )
    with dl_col2:
        comparison = create_comparison_image(open_image(original), open_image(stylized))
        buf = io.BytesIO()
        comparison.save(buf, format="PNG")
        st.download_button(
            "Download comparison",
            data=buf.getvalue(),
            file_name="comparison.png",
            mime="image/png",
            use_container_width=True,
        )
