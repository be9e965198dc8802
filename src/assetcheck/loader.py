"""glTF/GLB loading via pygltflib."""

from __future__ import annotations

import base64
import math
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote

import numpy as np
import pygltflib

from assetcheck.errors import InputShapeError, LoadError
from assetcheck.primitive import PrimitiveBuffers
from assetcheck.warning_policy import WarningPolicy, emit_warning

_COMPONENT_DTYPES: dict[int, str] = {
    pygltflib.BYTE: "<i1",
    pygltflib.UNSIGNED_BYTE: "<u1",
    pygltflib.SHORT: "<i2",
    pygltflib.UNSIGNED_SHORT: "<u2",
    pygltflib.UNSIGNED_INT: "<u4",
    pygltflib.FLOAT: "<f4",
}

_TYPE_WIDTHS: dict[str, int] = {
    "SCALAR": 1,
    "VEC2": 2,
    "VEC3": 3,
    "VEC4": 4,
    "MAT2": 4,
    "MAT3": 9,
    "MAT4": 16,
}


@dataclass
class LoadedPrimitive:
    """One mesh primitive with its decoded buffers."""

    name: str
    mesh_index: int
    primitive_index: int
    material: int | None
    buffers: PrimitiveBuffers


@dataclass
class MeshInstance:
    """A node placing a mesh in the scene."""

    node_index: int
    mesh_index: int
    matrix: np.ndarray  # (4, 4) world transform


@dataclass
class LoadedModel:
    path: Path
    file_size_kb: int
    gltf: pygltflib.GLTF2
    primitives: list[LoadedPrimitive] = field(default_factory=list)
    instances: list[MeshInstance] = field(default_factory=list)
    root_nodes: list[int] = field(default_factory=list)


def load_gltf(path: Path, *, warning_policy: WarningPolicy | None = None) -> LoadedModel:
    """Load a ``.glb`` or ``.gltf`` file and decode every triangle primitive.

    Raises:
        LoadError: When the file cannot be read or its buffers are invalid.
    """
    path = Path(path)
    try:
        size = path.stat().st_size
    except OSError as e:
        raise LoadError(f"Cannot read model file: {e}") from e
    if size == 0:
        raise LoadError(f"Model file is empty: {path}")

    try:
        gltf = pygltflib.GLTF2().load(str(path))
    except Exception as e:
        raise LoadError(f"Cannot parse glTF {path}: {e}") from e
    if gltf is None:
        raise LoadError(f"Cannot parse glTF {path}")

    model = LoadedModel(path=path, file_size_kb=round(size / 1024), gltf=gltf)
    reader = _AccessorReader(gltf, path.parent, warning_policy)

    for mesh_index, mesh in enumerate(gltf.meshes):
        mesh_name = mesh.name or f"mesh{mesh_index}"
        for prim_index, prim in enumerate(mesh.primitives):
            name = f"{mesh_name}-{prim_index}"
            mode = pygltflib.TRIANGLES if prim.mode is None else prim.mode
            if mode != pygltflib.TRIANGLES:
                emit_warning(
                    "W01",
                    f"Primitive {name!r} uses mode {mode}; only TRIANGLES is analyzed",
                    policy=warning_policy,
                )
                continue
            if prim.attributes.POSITION is None:
                continue

            positions = reader.read(prim.attributes.POSITION)
            if prim.indices is not None:
                indices = reader.read(prim.indices).reshape(-1).astype(np.int64)
            else:
                indices = np.arange(len(positions), dtype=np.int64)

            uvs = None
            if prim.attributes.TEXCOORD_0 is not None:
                uvs = reader.read(prim.attributes.TEXCOORD_0)
            else:
                emit_warning(
                    "W02",
                    f"Primitive {name!r} has no TEXCOORD_0; UV checks are skipped for it",
                    policy=warning_policy,
                )

            try:
                buffers = PrimitiveBuffers(name=name, indices=indices, positions=positions, uvs=uvs)
            except InputShapeError as e:
                raise LoadError(f"Invalid primitive in {path.name}: {e}") from e
            model.primitives.append(
                LoadedPrimitive(
                    name=name,
                    mesh_index=mesh_index,
                    primitive_index=prim_index,
                    material=prim.material,
                    buffers=buffers,
                )
            )

    model.root_nodes = _scene_roots(gltf)
    model.instances = _collect_instances(gltf, model.root_nodes)
    return model


class _AccessorReader:
    """Decodes accessors into float64 or integer numpy arrays, caching buffers."""

    def __init__(
        self, gltf: pygltflib.GLTF2, base_dir: Path, warning_policy: WarningPolicy | None
    ) -> None:
        self.gltf = gltf
        self.base_dir = base_dir
        self.warning_policy = warning_policy
        self._buffers: dict[int, bytes] = {}

    def buffer(self, index: int) -> bytes:
        if index not in self._buffers:
            self._buffers[index] = self._load_buffer(index)
        return self._buffers[index]

    def _load_buffer(self, index: int) -> bytes:
        try:
            buffer = self.gltf.buffers[index]
        except IndexError as e:
            raise LoadError(f"Buffer {index} does not exist") from e

        uri = buffer.uri
        if not uri:
            blob = self.gltf.binary_blob()
            if blob is None:
                raise LoadError(f"Buffer {index} has no URI and the file has no binary chunk")
            return bytes(blob)
        if uri.startswith("data:"):
            header, _, payload = uri.partition(",")
            if not header.endswith(";base64"):
                raise LoadError(f"Buffer {index} uses an unsupported data URI encoding")
            try:
                return base64.b64decode(payload)
            except ValueError as e:
                raise LoadError(f"Buffer {index} has an invalid base64 payload: {e}") from e
        try:
            return (self.base_dir / unquote(uri)).read_bytes()
        except OSError as e:
            raise LoadError(f"Cannot read external buffer {uri!r}: {e}") from e

    def read(self, index: int) -> np.ndarray:
        try:
            accessor = self.gltf.accessors[index]
        except IndexError as e:
            raise LoadError(f"Accessor {index} does not exist") from e

        dtype_str = _COMPONENT_DTYPES.get(accessor.componentType)
        width = _TYPE_WIDTHS.get(accessor.type)
        if dtype_str is None or width is None:
            raise LoadError(
                f"Accessor {index} has unsupported layout "
                f"({accessor.componentType}, {accessor.type})"
            )
        dtype = np.dtype(dtype_str)
        count = accessor.count

        if accessor.sparse is not None:
            emit_warning(
                "W04",
                f"Accessor {index} is sparse; sparse substitution is not applied",
                policy=self.warning_policy,
            )

        if accessor.bufferView is None:
            data = np.zeros((count, width), dtype=dtype)
        else:
            try:
                view = self.gltf.bufferViews[accessor.bufferView]
            except IndexError as e:
                raise LoadError(
                    f"Accessor {index} refers to missing buffer view {accessor.bufferView}"
                ) from e
            raw = self.buffer(view.buffer)
            element_size = dtype.itemsize * width
            stride = view.byteStride or element_size
            start = (view.byteOffset or 0) + (accessor.byteOffset or 0)
            end = start + stride * (count - 1) + element_size if count else start
            if end > len(raw) or end > (view.byteOffset or 0) + view.byteLength:
                raise LoadError(f"Accessor {index} reads past the end of its buffer view")
            data = np.ndarray(
                shape=(count, width),
                dtype=dtype,
                buffer=raw,
                offset=start,
                strides=(stride, dtype.itemsize),
            ).copy()

        if dtype.kind == "f":
            return data.astype(np.float64)
        if accessor.normalized:
            divisor = float(np.iinfo(dtype).max)
            return np.maximum(data.astype(np.float64) / divisor, -1.0)
        return data


def _scene_roots(gltf: pygltflib.GLTF2) -> list[int]:
    if gltf.scenes:
        scene_index = gltf.scene if gltf.scene is not None else 0
        try:
            return list(gltf.scenes[scene_index].nodes or [])
        except IndexError as e:
            raise LoadError(f"Default scene {scene_index} does not exist") from e
    children = {child for node in gltf.nodes for child in (node.children or [])}
    return [i for i in range(len(gltf.nodes)) if i not in children]


def node_matrix(node: pygltflib.Node) -> np.ndarray:
    """Local 4x4 transform of a node from ``matrix`` or translation/rotation/scale."""
    if node.matrix is not None and len(node.matrix) == 16:
        # glTF stores matrices column-major
        return np.asarray(node.matrix, dtype=np.float64).reshape(4, 4).T

    matrix = np.eye(4, dtype=np.float64)
    if node.rotation is not None:
        qx, qy, qz, qw = node.rotation
        matrix[:3, :3] = _quat_to_matrix(qx, qy, qz, qw)
    if node.scale is not None:
        matrix[:3, :3] = matrix[:3, :3] @ np.diag(np.asarray(node.scale, dtype=np.float64))
    if node.translation is not None:
        matrix[:3, 3] = node.translation
    return matrix


def _quat_to_matrix(qx: float, qy: float, qz: float, qw: float) -> np.ndarray:
    """Convert quaternion (x, y, z, w) to a 3x3 rotation matrix."""
    norm = math.sqrt(qx * qx + qy * qy + qz * qz + qw * qw)
    if norm == 0.0:
        return np.eye(3, dtype=np.float64)
    qx, qy, qz, qw = qx / norm, qy / norm, qz / norm, qw / norm
    x2 = qx + qx
    y2 = qy + qy
    z2 = qz + qz
    xx = qx * x2
    xy = qx * y2
    xz = qx * z2
    yy = qy * y2
    yz = qy * z2
    zz = qz * z2
    wx = qw * x2
    wy = qw * y2
    wz = qw * z2

    return np.array(
        [
            [1 - (yy + zz), xy - wz, xz + wy],
            [xy + wz, 1 - (xx + zz), yz - wx],
            [xz - wy, yz + wx, 1 - (xx + yy)],
        ],
        dtype=np.float64,
    )


def _collect_instances(gltf: pygltflib.GLTF2, roots: list[int]) -> list[MeshInstance]:
    instances: list[MeshInstance] = []
    stack = [(root, np.eye(4, dtype=np.float64)) for root in reversed(roots)]
    visited: set[int] = set()
    while stack:
        node_index, parent = stack.pop()
        if node_index in visited:
            raise LoadError(f"Node hierarchy contains a cycle at node {node_index}")
        visited.add(node_index)
        try:
            node = gltf.nodes[node_index]
        except IndexError as e:
            raise LoadError(f"Node {node_index} does not exist") from e
        world = parent @ node_matrix(node)
        if node.mesh is not None:
            instances.append(
                MeshInstance(node_index=node_index, mesh_index=node.mesh, matrix=world)
            )
        for child in reversed(node.children or []):
            stack.append((child, world))
    return instances
