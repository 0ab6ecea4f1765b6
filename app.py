"""
Target-Size Image Compressor - Streamlit Application

Upload an image, optionally resize it, and re-encode it so the file lands
near a requested size.
"""

import asyncio
import logging

import streamlit as st

# Import custom modules
from config import load_config
from compression import CompressionError, is_quality_adjustable
from compression.formats import FORMAT_LABELS, extension_for
from compression.pipeline import CompressionOptions, CompressionOutcome, compress_image
from utils.image_utils import (
    Dimensions, Percentage, bgr_to_pil, default_target_kb, format_file_size, get_image_info, load_image,
)
from utils.logging_utils import setup_logging
from utils.visualization import plot_search_trace, create_size_comparison


CONFIG = load_config()
setup_logging(CONFIG["log_level"])
logger = logging.getLogger(__name__)

# Page configuration
st.set_page_config(
    page_title="Target-Size Image Compressor",
    page_icon="🗜️",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Custom CSS
st.markdown("""
<style>
    @import url('https://fonts.googleapis.com/css2?family=DM+Sans:wght@400;500;700&family=Space+Mono&display=swap');

    .stApp {
        font-family: 'DM Sans', sans-serif;
        background: linear-gradient(135deg, #1a1a2e 0%, #16213e 50%, #0f3460 100%);
    }

    .main-header {
        background: linear-gradient(90deg, #e94560, #ff6b6b);
        -webkit-background-clip: text;
        -webkit-text-fill-color: transparent;
        font-size: 2.5rem;
        font-weight: 700;
        text-align: center;
        margin-bottom: 0.5rem;
    }

    .sub-header {
        color: #a8a8b3;
        text-align: center;
        font-size: 1.1rem;
        margin-bottom: 2rem;
    }

    .stProgress > div > div > div > div {
        background: linear-gradient(90deg, #e94560, #ff6b6b);
    }

    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
</style>
""", unsafe_allow_html=True)


def init_session_state():
    """Initialize session state variables."""
    if 'outcome' not in st.session_state:
        st.session_state.outcome = None
    if 'source_name' not in st.session_state:
        st.session_state.source_name = None


def sidebar_options(source_name=None, source_size=None, source_info=None):
    """Render the settings sidebar and return CompressionOptions keyword arguments."""
    output = CONFIG["output"]
    formats = list(FORMAT_LABELS)
    units = ["KB", "MB"]

    if source_size is None:
        default_size, default_unit = float(output["target_size"]), output["size_unit"]
    else:
        default_size, default_unit = float(default_target_kb(source_size)), "KB"
    source_info = source_info or {}

    with st.sidebar:
        st.markdown("## ⚙️ Settings")

        # Keyed by upload so a new file resets the suggested target
        col1, col2 = st.columns([2, 1])
        with col1:
            target_size = st.number_input("Target size", min_value=0.1,
                                          value=default_size, step=10.0,
                                          key=f"target_size_{source_name}")
        with col2:
            size_unit = st.selectbox("Unit", units, index=units.index(default_unit),
                                     key=f"size_unit_{source_name}")

        fmt = st.selectbox("Output format", formats,
                           index=formats.index(output["format"]),
                           format_func=lambda f: FORMAT_LABELS[f])
        if not is_quality_adjustable(fmt):
            st.caption("PNG is lossless: the target size cannot be enforced.")

        st.markdown("---")
        resize = None
        if st.checkbox("Resize image", value=False):
            mode = st.radio("Resize by", ["Dimensions", "Percentage"], horizontal=True)
            if mode == "Dimensions":
                width = st.number_input("Width (px)", min_value=1, value=None, step=10,
                                        placeholder=str(source_info.get("width", "")))
                height = st.number_input("Height (px)", min_value=1, value=None, step=10,
                                         placeholder=str(source_info.get("height", "")))
                maintain = st.checkbox("Maintain aspect ratio", value=True)
                resize = Dimensions(width=int(width) if width else None,
                                    height=int(height) if height else None,
                                    maintain_aspect=maintain)
            else:
                scale = st.slider("Scale (%)", 1, 200, int(output["scale_percentage"]))
                resize = Percentage(scale=scale)

    return dict(target_size=target_size, size_unit=size_unit, format=fmt, resize=resize)


def display_outcome(outcome: CompressionOutcome, original_image):
    """Display compression results, previews and download."""
    st.markdown("### 📊 Result")

    cols = st.columns(4)
    cols[0].metric("Original", format_file_size(outcome.original_size))
    cols[1].metric("Compressed", format_file_size(outcome.compressed_size))
    cols[2].metric("Saved", f"{outcome.compression_ratio:.1f}%")
    cols[3].metric("Quality", f"{outcome.quality * 100:.1f}%")

    if not outcome.feasible:
        st.warning(
            f"The target of {format_file_size(outcome.target_bytes)} could not be met "
            f"within tolerance; showing the closest result found."
        )

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("#### 📸 Original")
        st.image(bgr_to_pil(original_image), width='stretch')
        info = get_image_info(original_image)
        st.caption(f"{info['width']}×{info['height']} • {format_file_size(outcome.original_size)}")
    with col2:
        st.markdown("#### ✨ Compressed")
        st.image(bgr_to_pil(load_image(outcome.payload)), width='stretch')
        w, h = outcome.dimensions
        st.caption(f"{w}×{h} • {format_file_size(outcome.compressed_size)}")

    with st.expander(f"🔍 Search details · {outcome.iterations} iteration(s)", expanded=False):
        st.plotly_chart(
            plot_search_trace(outcome.attempts, outcome.target_bytes,
                              CONFIG["search"]["tolerance_fraction"]),
            width='stretch'
        )
        st.plotly_chart(
            create_size_comparison([
                ("Original", outcome.original_size),
                ("Target", outcome.target_bytes),
                ("Result", outcome.compressed_size),
            ]),
            width='stretch'
        )

    stem = (st.session_state.source_name or "image").rsplit(".", 1)[0]
    st.download_button(
        label="📥 Download",
        data=outcome.payload,
        file_name=f"{stem}_compressed{extension_for(outcome.format)}",
        mime=outcome.format,
        width='stretch'
    )


def main():
    """Main application entry point."""
    init_session_state()

    st.markdown('<h1 class="main-header">Target-Size Image Compressor</h1>', unsafe_allow_html=True)
    st.markdown('<p class="sub-header">Shrink images to the file size you need</p>', unsafe_allow_html=True)

    uploaded_file = st.file_uploader(
        "Upload an image",
        type=['jpg', 'jpeg', 'png', 'webp'],
        help=f"Supported formats: JPG, PNG, WebP (max {format_file_size(CONFIG['upload']['max_bytes'])})"
    )

    if uploaded_file is None:
        st.session_state.outcome = None
        sidebar_options()
        return

    data = uploaded_file.getvalue()
    if uploaded_file.name != st.session_state.source_name:
        st.session_state.outcome = None
        st.session_state.source_name = uploaded_file.name

    try:
        original_image = load_image(data)
    except CompressionError as e:
        sidebar_options()
        st.error(f"❌ {e}")
        return

    options = sidebar_options(uploaded_file.name, len(data), get_image_info(original_image))

    if st.button("🚀 Compress Image", type="primary", width='stretch'):
        progress_bar = st.progress(0)

        def on_progress(percentage, message):
            progress_bar.progress(int(percentage), text=message)

        try:
            st.session_state.outcome = asyncio.run(compress_image(
                data,
                CompressionOptions(mime_type=uploaded_file.type, **options),
                on_progress=on_progress,
                config=CONFIG,
            ))
        except CompressionError as e:
            logger.exception("Compression failed")
            st.error(f"❌ Compression failed: {e}")
            return

    if st.session_state.outcome is not None:
        display_outcome(st.session_state.outcome, original_image)


if __name__ == "__main__":
    main()
