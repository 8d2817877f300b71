import logging
from array import array
from collections.abc import Hashable, Sequence

import pyglet
from pyglet import gl

from voxelstream.graphics.atlas import tile_uv
from voxelstream.graphics.interface import CameraUniform
from voxelstream.world.mesher import FACE_QUAD_INDICES, INSTANCE_FLOATS

logger = logging.getLogger(__name__)


def _rotate(q: Sequence[float], v: tuple[float, float, float]) -> tuple[float, float, float]:
    qx, qy, qz, qw = q
    vx, vy, vz = v
    tx = 2.0 * (qy * vz - qz * vy)
    ty = 2.0 * (qz * vx - qx * vz)
    tz = 2.0 * (qx * vy - qy * vx)
    return (
        vx + qw * tx + (qy * tz - qz * ty),
        vy + qw * ty + (qz * tx - qx * tz),
        vz + qw * tz + (qx * ty - qy * tx),
    )


class ChunkRenderer:
    """MeshSink drawing each chunk's face instances from its own batch.

    Instances are expanded into triangles on upload: every corner of the shared
    face quad is rotated about the voxel centre and moved to the instance
    position.
    """

    _VERTEX_SOURCE = """#version 330 core
in vec3 position;
in vec2 tex_coords;
in vec4 colors;
out vec2 texture_coords;
out vec4 color_adjust;

uniform mat4 view_projection;

void main()
{
    gl_Position = view_projection * vec4(position, 1.0);
    texture_coords = tex_coords;
    color_adjust = colors;
}
"""
    _FRAGMENT_SOURCE = """#version 330 core
in vec2 texture_coords;
in vec4 color_adjust;
out vec4 final_colors;

uniform sampler2D block_atlas;

void main()
{
    vec4 texel = texture(block_atlas, texture_coords);
    final_colors = vec4(texel.rgb * color_adjust.rgb, texel.a * color_adjust.a);
}
"""

    def __init__(self, atlas_texture: pyglet.image.Texture) -> None:
        self.atlas_texture = atlas_texture
        self.program = pyglet.gl.current_context.create_program(
            (self._VERTEX_SOURCE, "vertex"),
            (self._FRAGMENT_SOURCE, "fragment"),
        )
        self.program["block_atlas"] = 0
        self._shader_group = pyglet.graphics.ShaderGroup(program=self.program)
        self._texture_group = pyglet.graphics.TextureGroup(atlas_texture, parent=self._shader_group)
        self._meshes: dict[Hashable, tuple[pyglet.graphics.Batch, pyglet.graphics.vertexdomain.VertexList]] = {}

    def __len__(self) -> int:
        return len(self._meshes)

    @staticmethod
    def expand_instances(vertex_buffer: array, instance_buffer: array) -> tuple[list[float], list[float], list[float]]:
        corners = [
            (vertex_buffer[i] - 0.5, vertex_buffer[i + 1] - 0.5, vertex_buffer[i + 2] - 0.5)
            for i in range(0, len(vertex_buffer), 3)
        ]
        positions: list[float] = []
        tex_coords: list[float] = []
        colors: list[float] = []
        for start in range(0, len(instance_buffer), INSTANCE_FLOATS):
            instance = instance_buffer[start : start + INSTANCE_FLOATS]
            ox, oy, oz = instance[0] + 0.5, instance[1] + 0.5, instance[2] + 0.5
            rotation = instance[4:8]
            u0, v0, u1, v1 = tile_uv((instance[8], instance[9]))
            color = tuple(instance[10:14])
            for index in FACE_QUAD_INDICES:
                cx, cy, cz = corners[index]
                rx, ry, rz = _rotate(rotation, (cx, cy, cz))
                positions.extend((ox + rx, oy + ry, oz + rz))
                tex_coords.extend((u0 + (cx + 0.5) * (u1 - u0), v1 - (cz + 0.5) * (v1 - v0)))
                colors.extend(color)
        return positions, tex_coords, colors

    def upload_mesh(self, chunk_id: Hashable, vertex_buffer: array, instance_buffer: array) -> None:
        self.release_mesh(chunk_id)
        positions, tex_coords, colors = self.expand_instances(vertex_buffer, instance_buffer)
        if not positions:
            return
        batch = pyglet.graphics.Batch()
        vertex_list = self.program.vertex_list(
            len(positions) // 3,
            gl.GL_TRIANGLES,
            batch=batch,
            group=self._texture_group,
            position=("f/static", positions),
            tex_coords=("f/static", tex_coords),
            colors=("f/static", colors),
        )
        self._meshes[chunk_id] = (batch, vertex_list)

    def release_mesh(self, chunk_id: Hashable) -> None:
        mesh = self._meshes.pop(chunk_id, None)
        if mesh is not None:
            mesh[1].delete()

    def draw(self, chunks: Sequence[tuple[Hashable, int]], camera: CameraUniform) -> None:
        self.program.use()
        self.program["view_projection"] = camera.view_projection
        for chunk_id, instance_count in chunks:
            if instance_count <= 0:
                continue
            mesh = self._meshes.get(chunk_id)
            if mesh is not None:
                mesh[0].draw()
        self.program.stop()

    def delete(self) -> None:
        for chunk_id in list(self._meshes):
            self.release_mesh(chunk_id)
        logger.debug("chunk renderer released all meshes")
