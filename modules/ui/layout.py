"""Gradio layout composition for the Lutim uploader."""

from __future__ import annotations

import logging
from typing import Any

try:
    import gradio as gr
except ImportError:  # pragma: no cover
    gr = None  # type: ignore

from config.settings import AppConfig
from modules.services.history_service import UploadHistory, UploadHistoryService
from modules.services.lutim_client import LutimClient
from modules.services.upload_service import LutimUploadService
from modules.ui.callbacks import HISTORY_COLUMNS, build_callbacks

logger = logging.getLogger(__name__)


def _load_history(history_service: UploadHistoryService) -> UploadHistory:
    try:
        return history_service.load()
    except (OSError, ValueError) as exc:
        logger.error("Error loading history from %s: %s", history_service.history_path, exc)
        return UploadHistory()


def build_service(config: AppConfig) -> LutimUploadService:
    """Wire the upload service from configuration."""
    history_service = UploadHistoryService(config.history_path, max_entries=config.max_history)
    return LutimUploadService(
        config,
        client=LutimClient.from_config(config),
        history=_load_history(history_service),
        history_service=history_service,
    )


def build_app(config: AppConfig) -> Any:
    """Compose and return the Gradio application."""
    if gr is None:
        raise RuntimeError("Gradio 未安装，请先执行依赖安装。")

    upload_service = build_service(config)
    callbacks_map = build_callbacks(config, upload_service=upload_service)
    server_label = config.metadata.get("server_label") or config.lutim_url

    with gr.Blocks(title="Lutim Uploader") as demo:
        gr.Markdown(f"## Lutim 截图上传\n服务器：{server_label}")

        # 上传
        with gr.Tab("上传"):
            with gr.Row():
                with gr.Column():
                    image = gr.Image(label="截图", type="pil")
                    title = gr.Textbox(
                        label="标题",
                        placeholder="用于生成文件名，例如窗口标题",
                    )
                    upload_btn = gr.Button("上传到 Lutim", variant="primary")

                with gr.Column():
                    link = gr.Textbox(label="图片链接", interactive=False)
                    status = gr.Markdown("准备就绪。")

        # 历史记录
        with gr.Tab("历史记录"):
            refresh_btn = gr.Button(
                "刷新历史记录",
                interactive=callbacks_map["has_history"](),
            )
            gallery = gr.Gallery(label="缩略图", columns=6, height="auto")
            table = gr.Dataframe(headers=HISTORY_COLUMNS, interactive=False, wrap=True)
            history_status = gr.Markdown("")

        def _on_upload(image_value: Any, title_value: str):
            link_value, message, available = callbacks_map["on_upload"](image_value, title_value)
            return link_value, message, gr.update(interactive=available)

        upload_btn.click(
            fn=_on_upload,
            inputs=[image, title],
            outputs=[link, status, refresh_btn],
        )

        refresh_btn.click(
            fn=callbacks_map["on_show_history"],
            inputs=[],
            outputs=[gallery, table, history_status],
        )

    return demo
