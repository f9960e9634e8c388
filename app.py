import gradio as gr

import os
import shutil
from typing import *

from depthmesh import depth_map as dm
from depthmesh.exporter import save
from depthmesh.logging_config import setup_logging
from depthmesh.pipeline import PerspectivePipeline
from depthmesh.settings import Quality, ViewerSettings


TMP_DIR = os.environ.get("DEPTHMESH_TMP_DIR", '/tmp/depthmesh_sessions')
os.makedirs(TMP_DIR, exist_ok=True)

logger = setup_logging()
SETTINGS = ViewerSettings.from_env()


def start_session(req: gr.Request):
    user_dir = os.path.join(TMP_DIR, str(req.session_hash))
    os.makedirs(user_dir, exist_ok=True)


def end_session(req: gr.Request):
    user_dir = os.path.join(TMP_DIR, str(req.session_hash))
    shutil.rmtree(user_dir, ignore_errors=True)


def reconstruct_image(
    image_path: str,
    depth_quality: str,
    smooth_iterations: int,
    req: gr.Request,
) -> Tuple[str, Any, str, str, str]:
    """Run the depth -> mesh pipeline and write every export format to the session dir."""
    if not image_path:
        raise gr.Error("Please upload an image first.")

    user_dir = os.path.join(TMP_DIR, str(req.session_hash))
    os.makedirs(user_dir, exist_ok=True)

    pipe = PerspectivePipeline(SETTINGS.updated(depth_model_quality=depth_quality))
    depth = pipe.estimate_depth(image_path)
    try:
        mesh = pipe.generate_from_depth(image_path, depth, smooth_iterations=int(smooth_iterations))
    except ValueError as e:
        logger.error(f"Reconstruction failed: {e}")
        raise gr.Error(str(e))

    glb_path = save(mesh, os.path.join(user_dir, 'model.glb'))
    obj_path = save(mesh, os.path.join(user_dir, 'model.obj'))
    gltf_path = save(mesh, os.path.join(user_dir, 'model.gltf'))
    json_path = save(mesh, os.path.join(user_dir, 'model.json'))

    return glb_path, dm.to_image(depth), obj_path, gltf_path, json_path


# Build Gradio UI
with gr.Blocks(delete_cache=(600, 600), theme=gr.themes.Soft()) as demo:
    gr.Markdown("""
    ## 3D Perspective Viewer
    Turn a photo into a depth-displaced 3D plane.

    * Depth is simulated (radial gradient) until a real depth model is plugged in
    * The texture reference of the mesh is the uploaded image
    """)

    with gr.Row():
        with gr.Column():
            image_prompt = gr.Image(label="Input Image", type="filepath", height=300)

            with gr.Accordion(label="Reconstruction Settings", open=False):
                depth_quality = gr.Dropdown(
                    [q.value for q in Quality],
                    value=SETTINGS.depth_model_quality.value,
                    label="Depth Model Quality",
                )
                smooth_iterations = gr.Slider(0, 5, label="Depth Smoothing Passes", value=0, step=1)

            generate_btn = gr.Button("Generate 3D Model", variant="primary")

        with gr.Column():
            model_output = gr.Model3D(label="3D Viewer", height=300)
            depth_output = gr.Image(label="Depth Map", type="pil", height=200)

            with gr.Row():
                download_obj = gr.DownloadButton(label="Download OBJ", interactive=False)
                download_gltf = gr.DownloadButton(label="Download glTF", interactive=False)
                download_json = gr.DownloadButton(label="Download JSON", interactive=False)

    # Handlers
    demo.load(start_session)
    demo.unload(end_session)

    generate_btn.click(
        reconstruct_image,
        inputs=[image_prompt, depth_quality, smooth_iterations],
        outputs=[model_output, depth_output, download_obj, download_gltf, download_json],
    ).then(
        lambda: tuple([gr.DownloadButton(interactive=True)] * 3),
        outputs=[download_obj, download_gltf, download_json],
    )

    model_output.clear(
        lambda: tuple([gr.DownloadButton(interactive=False)] * 3),
        outputs=[download_obj, download_gltf, download_json],
    )


# Launch
if __name__ == "__main__":
    demo.launch()
