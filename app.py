#!/usr/bin/env python3
"""
relief-stl Web Interface

A simple Gradio-based web UI for converting images to printable STL reliefs.

Run with: python app.py
Then open http://localhost:7860 in your browser
"""

import sys
from pathlib import Path
import tempfile
import numpy as np

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import gradio as gr
from relief_stl import ExportSettings, ReliefGenerator


def process_image(
    image,
    width: float,
    height: float,
    thickness: float,
    scale_percent: float,
    height_mapping: str,
    flip_left_right: bool,
    strategy: str,
    posterize: bool,
    monochrome: bool,
    ascii_stl: bool
):
    """
    Process an uploaded image and generate an STL relief.

    Returns preview path, stats text, and the STL path for download.
    """
    if image is None:
        return None, "Please upload an image first.", None

    if not isinstance(image, np.ndarray):
        return None, "Invalid image format.", None

    generator = ReliefGenerator()
    generator.load_array(image)
    generator.preprocess(posterize=posterize, monochrome=monochrome)

    pixel_h, pixel_w = generator.image.shape[:2]
    settings = ExportSettings(
        # Zero means "one unit per pixel"
        width=width or float(pixel_w),
        height=height or float(pixel_h),
        thickness=thickness,
        scale_percent=scale_percent,
        invert_heights=(height_mapping == "White = Highest"),
        flip_left_right=flip_left_right,
        strategy="voxel" if strategy == "Voxel" else "height_field",
        binary=not ascii_stl
    )
    generator.settings = settings

    export_dir = tempfile.mkdtemp(prefix="relief_")
    try:
        result = generator.run(Path(export_dir) / "relief.stl")
    except ValueError as e:
        return None, f"**Error:** {e}", None

    stats = generator.get_mesh_stats()
    size = stats["size"]

    stats_text = f"""## Export Complete!

| Metric | Value |
|--------|-------|
| Input Size | {pixel_w} x {pixel_h} pixels |
| Voxel Count | {stats['voxel_count']:,} |
| Grid Size | {stats['grid_size']} |
| Voxel Size | {result.voxel_size:.4f} |
| Triangles | {result.triangle_count:,} |
| Model Size | {size[0]:.2f} x {size[1]:.2f} x {size[2]:.2f} |
| Watertight | {'yes' if stats['watertight'] else 'no'} |

**Settings:** {height_mapping}, {strategy}, Scale={scale_percent:g}%
"""

    return str(result.path), stats_text, str(result.path)


def create_demo_image(style: str):
    """Create a demo image for testing."""
    if not style:
        return None

    size = 64
    y, x = np.mgrid[0:size, 0:size]

    if style == "Dome":
        center = (size - 1) / 2
        dist = np.sqrt((x - center) ** 2 + (y - center) ** 2) / center
        grey = np.clip(dist * 255, 0, 255)

    elif style == "Gradient":
        grey = 255 * x / (size - 1)

    elif style == "Rings":
        center = (size - 1) / 2
        dist = np.sqrt((x - center) ** 2 + (y - center) ** 2)
        grey = np.where((dist // 6) % 2 == 0, 0, 255)

    elif style == "Text":
        grey = np.full((size, size), 255)
        # Block letter "T"
        grey[8:16, 12:52] = 0
        grey[16:56, 26:38] = 0

    else:
        return None

    grey = grey.astype(np.uint8)
    return np.stack([grey, grey, grey], axis=-1)


# Build the Gradio interface
with gr.Blocks(title="relief-stl") as app:

    gr.Markdown("""
    # relief-stl
    ### Convert Images to Printable 3D Reliefs

    Upload an image or try a demo, set the print dimensions, and download your STL!
    """)

    with gr.Row():
        # Left column - Input
        with gr.Column(scale=1):
            gr.Markdown("### Input Image")

            image_input = gr.Image(
                label="Upload Image",
                type="numpy",
                image_mode="RGB"
            )

            with gr.Row():
                demo_dropdown = gr.Dropdown(
                    choices=["Dome", "Gradient", "Rings", "Text"],
                    label="Or try a demo"
                )
                demo_btn = gr.Button("Load Demo")

            gr.Markdown("### Dimensions")
            gr.Markdown("*Leave width/height at 0 for one unit per pixel*")

            width = gr.Number(value=0, label="Width")
            height = gr.Number(value=0, label="Height")
            thickness = gr.Number(value=5, label="Thickness")

            scale_percent = gr.Slider(
                minimum=1,
                maximum=300,
                value=100,
                step=1,
                label="Scale (%)"
            )

            gr.Markdown("### Options")

            height_mapping = gr.Radio(
                choices=["Black = Highest", "White = Highest"],
                value="Black = Highest",
                label="Height Mapping"
            )

            flip_left_right = gr.Checkbox(value=False, label="Flip Left/Right")

            strategy = gr.Dropdown(
                choices=["Height Field", "Voxel"],
                value="Height Field",
                label="Mesh Strategy"
            )

            with gr.Row():
                posterize = gr.Checkbox(value=False, label="Posterize")
                monochrome = gr.Checkbox(value=False, label="Monochrome")
                ascii_stl = gr.Checkbox(value=False, label="ASCII STL")

            generate_btn = gr.Button("Generate STL", variant="primary")

        # Middle column - 3D Preview
        with gr.Column(scale=2):
            gr.Markdown("### 3D Preview")
            gr.Markdown("*Click and drag to rotate, scroll to zoom*")

            model_preview = gr.Model3D(
                label="3D Model Preview",
                clear_color=[0.1, 0.1, 0.1, 1.0]
            )

            stats_output = gr.Markdown(
                value="Upload an image and click 'Generate' to see results."
            )

        # Right column - Downloads
        with gr.Column(scale=1):
            gr.Markdown("### Download")

            stl_output = gr.File(label="STL (Slicers)")

            gr.Markdown("""
            ---
            **Tips:**
            - **Height Field** = smooth slopes
            - **Voxel** = stepped terraces
            - Mirroring is on by default so the print reads correctly from the top
            """)

    # Wire up events
    demo_btn.click(
        fn=create_demo_image,
        inputs=[demo_dropdown],
        outputs=[image_input]
    )

    generate_btn.click(
        fn=process_image,
        inputs=[
            image_input,
            width,
            height,
            thickness,
            scale_percent,
            height_mapping,
            flip_left_right,
            strategy,
            posterize,
            monochrome,
            ascii_stl
        ],
        outputs=[model_preview, stats_output, stl_output]
    )


if __name__ == "__main__":
    print("\n" + "="*60)
    print("relief-stl Web Interface")
    print("="*60)
    print("\nStarting server...")
    print("Open http://localhost:7860 in your browser\n")

    app.launch(
        server_name="0.0.0.0",
        server_port=7860,
        share=False
    )
