"""The narrow seam between the simulation core and whatever draws it.

Nothing here touches OpenGL, so the core and its tests run without a display.
"""

from __future__ import annotations

import math
from array import array
from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from typing import Protocol

from pyglet.math import Mat4, Vec3


@dataclass(frozen=True)
class CameraUniform:
    view_projection: Mat4
    eye: Vec3


class MeshSink(Protocol):
    def upload_mesh(self, chunk_id: Hashable, vertex_buffer: array, instance_buffer: array) -> None: ...

    def release_mesh(self, chunk_id: Hashable) -> None: ...

    def draw(self, chunks: Sequence[tuple[Hashable, int]], camera: CameraUniform) -> None: ...


class NullMeshSink:
    """Discards meshes; used by headless sessions."""

    def upload_mesh(self, chunk_id: Hashable, vertex_buffer: array, instance_buffer: array) -> None:
        pass

    def release_mesh(self, chunk_id: Hashable) -> None:
        pass

    def draw(self, chunks: Sequence[tuple[Hashable, int]], camera: CameraUniform) -> None:
        pass


def sight_vector(yaw: float, pitch: float) -> tuple[float, float, float]:
    m = math.cos(math.radians(pitch))
    dy = math.sin(math.radians(pitch))
    dx = math.cos(math.radians(yaw - 90)) * m
    dz = math.sin(math.radians(yaw - 90)) * m
    return dx, dy, dz


def build_camera_uniform(
    eye: tuple[float, float, float],
    yaw: float,
    pitch: float,
    aspect: float,
    fov: float = 65.0,
    z_near: float = 0.1,
    z_far: float = 200.0,
) -> CameraUniform:
    projection = Mat4.perspective_projection(aspect, z_near=z_near, z_far=z_far, fov=fov)
    px, py, pz = eye
    yaw_matrix = Mat4.from_rotation(math.radians(yaw), Vec3(0.0, 1.0, 0.0))
    pitch_matrix = Mat4.from_rotation(math.radians(-pitch), Vec3(1.0, 0.0, 0.0))
    translate = Mat4.from_translation(Vec3(-px, -py, -pz))
    view = pitch_matrix @ yaw_matrix @ translate
    return CameraUniform(view_projection=projection @ view, eye=Vec3(px, py, pz))
