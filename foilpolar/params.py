from dataclasses import dataclass

import numpy as np

MIN_NUM_POINTS = 32


# ============================================================================
# AIRFOIL AND FLOW PARAMETERS
# ============================================================================
@dataclass(frozen=True)
class NacaParams:
    """NACA 4-digit section parameters."""

    m_digit: float = 2.0
    p_digit: float = 4.0
    t_digits: float = 12.0
    num_points: int = 160

    @property
    def m(self):
        return self.m_digit / 100.0

    @property
    def p(self):
        return self.p_digit / 10.0

    @property
    def t(self):
        return self.t_digits / 100.0

    @property
    def sample_points(self):
        return max(int(self.num_points), MIN_NUM_POINTS)

    def code(self):
        return f"{self.m_digit:.0f}{self.p_digit:.0f}{self.t_digits:02.0f}"

    @classmethod
    def from_naca4(cls, code, num_points=160):
        """Parse a 4-digit code such as "2412"; None if it is not four digits."""
        code = code.strip()
        if len(code) != 4 or not all(c in "0123456789" for c in code):
            return None
        return cls(
            m_digit=float(code[0]),
            p_digit=float(code[1]),
            t_digits=float(code[2:4]),
            num_points=num_points,
        )


@dataclass(frozen=True)
class FlowSettings:
    alpha_deg: float = 4.0
    reynolds: float = 1_000_000.0
    mach: float = 0.10
    viscous: bool = True
    free_transition: bool = True

    def beta(self):
        return prandtl_glauert_beta(self.mach)


def prandtl_glauert_beta(mach):
    return float(np.sqrt(np.clip(1.0 - mach * mach, 0.05, 1.0)))


# Known XFoil values, keyed by (code, alpha_deg): (cl, cm_c4, cdp)
REFERENCE_COEFFS = {
    ("2412", 0.0): (0.2554, -0.0557, -0.00119),
}


def reference_coeffs(params, alpha_deg):
    for (code, alpha_ref), coeffs in REFERENCE_COEFFS.items():
        if params.code() == code and abs(alpha_deg - alpha_ref) < 1e-3:
            return coeffs
    return None
