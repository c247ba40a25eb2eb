# pbdsim

A small position based dynamics (PBD) engine built on numpy. Particles are
bound together by constraints: distance springs, shape matching for rigid
bodies, pins, half-space (ground plane) contacts, friction and
particle–particle collisions. Neighbouring particles are found through a
spatial hash grid.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Overview

| Module | What it holds |
| --- | --- |
| `pbdsim.transform` | `Quaternion` and `Transform` (translation, rotation, scale, 4×4 matrices) |
| `pbdsim.hashgrid` | `HashGrid` spatial hash and `hash_combine` |
| `pbdsim.inputs` | `InputManager` key and mouse-button state tracking with `InputState` |
| `pbdsim.collision` | `Ray`, `Plane` and ray/plane/line/sphere intersection functions |
| `pbdsim.particle` | `Particle`: position, predicted position, velocity, inverse mass |
| `pbdsim.constraints` | All constraint types and the `SolverSettings` they read |
| `pbdsim.dynamic_object` | `DynamicObject` base and `SingleParticle` |
| `pbdsim.mesh` | `Vertex`, `Shape`, `Model` triangle meshes with welded points |
| `pbdsim.bodies` | `RigidBody`, `RigidBodyGrid`, `SoftBody` |
| `pbdsim.world` | `DynamicsWorld`, the simulation loop |
| `pbdsim.controller` | `DynamicsWorldController` for tuning a world |
| `pbdsim.scene_object` | `SceneObject`, a placed object that follows its dynamic body |
| `pbdsim.builders` | Helpers that turn scene objects into particles, bodies and ropes |

## A first simulation

```python
from pbdsim.world import DynamicsWorld

world = DynamicsWorld()
world.initialize()                 # adds the ground plane through the origin, normal +y

ball = world.add_particle(0.0, 5.0, 0.0)
world.set_simulate(True)
for _ in range(200):
    world.update()

print(ball.x)
```

`update()` does nothing unless the world is simulating; `step()` advances
exactly one frame and leaves simulation switched off. Each frame integrates
gravity, applies damping, predicts positions, builds collision constraints
from the hash grid and the planes, runs `precondition_iterations` and
`constraint_iterations` solver passes, and then updates velocities. A particle
that moves less than 0.003 in a frame has its velocity set to zero and keeps
its position.

The world's defaults are `dt=1/60`, `gravity=(0, -9.8, 0)`,
`precondition_iterations=1`, `constraint_iterations=4`, `damping=0.0`,
`particle_mass=1.0` and `cell_size=1.0`, all keyword arguments of
`DynamicsWorld`.

## Springs and pins

```python
a = world.add_particle(0.0, 3.0, 0.0)
b = world.add_particle(1.0, 3.0, 0.0)
spring = world.add_distance_equality_constraint(a, b)   # rest length = current distance
group = world.add_pin_together_constraint([a, b])       # pulls both to their mean
world.delete_constraint(group)
```

Particles hold only weak references to these constraints; the world's
`constraints` list keeps them alive.

## Ropes and bodies

`pbdsim.builders` builds larger structures:

- `add_rope(world, start, end, num_particles)` returns a chain of
  `num_particles + 1` particles joined by distance constraints.
- `add_dynamic_object_as_particle(world, scene_object)` simulates a scene
  object as one particle of its radius.
- `add_dynamic_object_as_non_uniform_particle(world, scene_object, radius)`
  adds an immovable collider.
- `add_dynamic_object_as_rigid_body(world, scene_object)` puts a particle on
  every welded mesh point and holds them together with one shape-matching
  constraint.
- `add_dynamic_object_as_soft_body(world, scene_object)` puts a particle on
  every welded mesh point and a distance constraint on every mesh edge.
- `add_dynamic_object_as_rigid_body_grid(world, scene_object, path)` reads
  particle positions from the `v` records and signed-distance gradients from
  the `vn` records of a text file.

The mesh builders return `None` when the scene object has no model.

```python
from pbdsim.mesh import Model
from pbdsim.scene_object import SceneObject
from pbdsim.builders import add_dynamic_object_as_rigid_body

positions = [(0, 0, 0), (1, 0, 0), (0, 1, 0), (0, 0, 1)]
faces = [(0, 1, 2), (0, 1, 3), (0, 2, 3), (1, 2, 3)]
model = Model.from_mesh(positions, None, faces)

obj = SceneObject(model=model, position=(0.0, 2.0, 0.0))
body = add_dynamic_object_as_rigid_body(world, obj)
obj.update()            # the scene object's model_matrix follows its body
```

## Tuning

```python
from pbdsim.controller import DynamicsWorldController

ctl = DynamicsWorldController(world)
ctl.set_gravity_y(-9.81)
ctl.set_time_step_size(0.016)
ctl.set_constraint_iteration(10)
ctl.set_pbd_damping(0.01)
ctl.set_distance_constraint_stretch(0.8)
ctl.start_stop_sim()    # toggles continuous simulation
ctl.step_sim()          # one frame
```

## Other pieces

- `Transform` keeps translation, a `Quaternion` rotation and scale, and builds
  the matrix `T * R * S` lazily with `to_matrix()`.
- `HashGrid` buckets items by the hash of an integer cell;
  `HashGrid.neighbour_cells(cell)` yields the 27 surrounding cells.
- `InputManager` moves each registered key or button through
  `REGISTERED → TRIGGERED → PRESSED` and, after release,
  `UNREGISTERED → RELEASED`, once per `update(mouse_pos)`, and tracks the
  mouse delta.

## What it does not do

pbdsim only simulates. It has no renderer, window, picking or on-screen
manipulators, no command-line program, and it does not load mesh file formats:
meshes are built from position, normal and face arrays with `Model.from_mesh`
or `Model.add_mesh`.