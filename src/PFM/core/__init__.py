from .utils import jit_cross, jit_norm, jit_dot
