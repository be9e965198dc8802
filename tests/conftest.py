"""Shared fixtures: small meshes and a GLB writer."""

from __future__ import annotations

import base64
from pathlib import Path

import numpy as np
import pygltflib
import pytest

from assetcheck.primitive import PrimitiveBuffers

# Corner tetrahedron with outward-facing triangles.
TETRA_POSITIONS = np.array(
    [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
    dtype=np.float64,
)
TETRA_INDICES = np.array([0, 2, 1, 0, 1, 3, 0, 3, 2, 1, 2, 3], dtype=np.int64)

# Unit quad in the XY plane, two triangles sharing the diagonal.
QUAD_POSITIONS = np.array(
    [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0]],
    dtype=np.float64,
)
QUAD_UVS = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]], dtype=np.float64)
QUAD_INDICES = np.array([0, 1, 2, 0, 2, 3], dtype=np.int64)


@pytest.fixture
def tetrahedron() -> PrimitiveBuffers:
    return PrimitiveBuffers(name="tetra", indices=TETRA_INDICES, positions=TETRA_POSITIONS)


@pytest.fixture
def unit_quad() -> PrimitiveBuffers:
    return PrimitiveBuffers(
        name="quad", indices=QUAD_INDICES, positions=QUAD_POSITIONS, uvs=QUAD_UVS
    )


def build_gltf(
    meshes: list[dict],
    node_transform: dict | None = None,
) -> tuple[pygltflib.GLTF2, bytes]:
    """Assemble a glTF with one mesh and one root node per entry of ``meshes``.

    Each entry holds ``positions`` and optionally ``indices``, ``uvs``,
    ``mode`` and ``name``. Returns the document and its binary buffer.
    """
    gltf = pygltflib.GLTF2(
        scene=0,
        scenes=[pygltflib.Scene(nodes=[])],
    )
    blob_data = bytearray()

    def add_view(data: bytes, target: int) -> int:
        offset = len(blob_data)
        blob_data.extend(data)
        gltf.bufferViews.append(
            pygltflib.BufferView(
                buffer=0,
                byteOffset=offset,
                byteLength=len(data),
                target=target,
            )
        )
        return len(gltf.bufferViews) - 1

    for mesh_def in meshes:
        positions = np.asarray(mesh_def["positions"], dtype=np.float32)
        pos_view = add_view(positions.tobytes(), pygltflib.ARRAY_BUFFER)
        gltf.accessors.append(
            pygltflib.Accessor(
                bufferView=pos_view,
                byteOffset=0,
                componentType=pygltflib.FLOAT,
                count=len(positions),
                type=pygltflib.VEC3,
                max=positions.max(axis=0).tolist(),
                min=positions.min(axis=0).tolist(),
            )
        )
        attributes = pygltflib.Attributes(POSITION=len(gltf.accessors) - 1)

        if mesh_def.get("uvs") is not None:
            uvs = np.asarray(mesh_def["uvs"], dtype=np.float32)
            uv_view = add_view(uvs.tobytes(), pygltflib.ARRAY_BUFFER)
            gltf.accessors.append(
                pygltflib.Accessor(
                    bufferView=uv_view,
                    byteOffset=0,
                    componentType=pygltflib.FLOAT,
                    count=len(uvs),
                    type=pygltflib.VEC2,
                )
            )
            attributes.TEXCOORD_0 = len(gltf.accessors) - 1

        indices_acc = None
        if mesh_def.get("indices") is not None:
            indices = np.asarray(mesh_def["indices"], dtype=np.uint32)
            idx_view = add_view(indices.tobytes(), pygltflib.ELEMENT_ARRAY_BUFFER)
            gltf.accessors.append(
                pygltflib.Accessor(
                    bufferView=idx_view,
                    byteOffset=0,
                    componentType=pygltflib.UNSIGNED_INT,
                    count=len(indices),
                    type=pygltflib.SCALAR,
                )
            )
            indices_acc = len(gltf.accessors) - 1

        gltf_prim = pygltflib.Primitive(
            attributes=attributes,
            indices=indices_acc,
            mode=mesh_def.get("mode", pygltflib.TRIANGLES),
            material=mesh_def.get("material"),
        )
        mesh_idx = len(gltf.meshes)
        mesh_name = mesh_def.get("name", f"mesh{mesh_idx}")
        gltf.meshes.append(pygltflib.Mesh(name=mesh_name, primitives=[gltf_prim]))
        gltf.nodes.append(pygltflib.Node(name=mesh_name, mesh=mesh_idx, **(node_transform or {})))
        gltf.scenes[0].nodes.append(len(gltf.nodes) - 1)

    gltf.buffers = [pygltflib.Buffer(byteLength=len(blob_data))]
    return gltf, bytes(blob_data)


@pytest.fixture
def write_glb(tmp_path):
    """Return ``write(meshes, name="model.glb", node_transform=None) -> Path``."""

    def write(meshes: list[dict], name: str = "model.glb", node_transform: dict | None = None):
        gltf, blob = build_gltf(meshes, node_transform)
        gltf.set_binary_blob(blob)
        path = tmp_path / name
        path.write_bytes(b"".join(gltf.save_to_bytes()))
        return path

    return write


@pytest.fixture
def write_gltf(tmp_path):
    """Return ``write(meshes, name="model.gltf", external=False) -> Path``.

    The buffer is embedded as a base64 data URI, or written next to the
    document as ``<stem>.bin`` when ``external`` is set.
    """

    def write(meshes: list[dict], name: str = "model.gltf", external: bool = False) -> Path:
        gltf, blob = build_gltf(meshes)
        path = tmp_path / name
        if external:
            bin_name = f"{path.stem}.bin"
            (tmp_path / bin_name).write_bytes(blob)
            gltf.buffers[0].uri = bin_name
        else:
            encoded = base64.b64encode(blob).decode("ascii")
            gltf.buffers[0].uri = f"data:application/octet-stream;base64,{encoded}"
        path.write_text(gltf.to_json(), encoding="utf-8")
        return path

    return write


@pytest.fixture
def tetra_mesh() -> dict:
    return {"name": "tetra", "positions": TETRA_POSITIONS, "indices": TETRA_INDICES}


@pytest.fixture
def quad_mesh() -> dict:
    return {"name": "quad", "positions": QUAD_POSITIONS, "uvs": QUAD_UVS, "indices": QUAD_INDICES}


@pytest.fixture
def schema_yaml() -> str:
    return """\
version: 1
file_size_kb:
  min: 0
  max: 1024
max_triangle_count: 100
max_material_count: 2
dimensions:
  maximum: {length: 2.0, width: 2.0, height: 2.0}
  minimum: {length: 0.5, width: 0.0, height: 0.5}
  percent_tolerance: {length: 5, width: 5, height: 5}
uvs:
  require_range_zero_to_one: true
  max_inverted_triangles: 0
  max_overlapping_triangles: 0
  gutter_resolution: 16
  texture_resolution: 1024
  pixels_per_meter: {min: 512, max: 2048}
max_non_manifold_edges: 0
max_hard_edges: 10
"""
