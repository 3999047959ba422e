from .view_widget import TreeViewWidget, paint_frame, render_to_image

__all__ = ["TreeViewWidget", "paint_frame", "render_to_image"]
