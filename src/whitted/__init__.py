"""Whitted-style ray tracer built on Taichi.

This package renders scenes of analytic primitives with Phong shading,
hard shadows, mirror reflection and refraction through nested transparent
objects. Scene data lives in Taichi fields and per-pixel shading runs in
Taichi kernels.

Subpackages:
    core: Rays, transforms, the shading integrator and the render loop
    geometry: Sphere, plane, cube, cylinder and cone intersection math
    materials: Phong materials and procedural patterns
    scene: Shape/light tables, intersection engine and the World container
    camera: Pinhole camera with view transform
    preview: Image export utilities

Taichi must be initialized before importing any submodule that declares
fields. Use double precision so literals and fields agree:

    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
"""

__version__ = "0.1.0"
