import pyglet
from pyglet import gl
from pyglet.math import Mat4

SKY_COLOR = (0.52, 0.80, 0.92, 1.0)


def setup_gl() -> None:
    gl.glClearColor(*SKY_COLOR)
    gl.glEnable(gl.GL_BLEND)
    gl.glBlendFunc(gl.GL_SRC_ALPHA, gl.GL_ONE_MINUS_SRC_ALPHA)


def set_3d(window: pyglet.window.Window) -> float:
    """Prepare depth-tested drawing; returns the framebuffer aspect ratio."""
    width, height = window.get_framebuffer_size()
    gl.glEnable(gl.GL_DEPTH_TEST)
    gl.glEnable(gl.GL_CULL_FACE)
    gl.glCullFace(gl.GL_BACK)
    gl.glViewport(0, 0, width, height)
    return width / float(max(1, height))


def set_2d(window: pyglet.window.Window) -> None:
    width, height = window.get_framebuffer_size()
    gl.glDisable(gl.GL_DEPTH_TEST)
    gl.glDisable(gl.GL_CULL_FACE)
    gl.glViewport(0, 0, width, height)
    window.projection = Mat4.orthogonal_projection(0.0, float(width), 0.0, float(height), -1.0, 1.0)
    window.view = Mat4()
