"""Color space conversions and the CIEDE2000 perceptual distance.

Provides:
    - sRGB → linear RGB (exact sRGB transfer function)
    - linear RGB → XYZ → Lab (CIE L*a*b*, D65 illuminant)
    - ΔE2000: Perceptual color difference (CIEDE2000 formula)
    - Scalar wrappers on RgbColor / LabColor value types

Used by:
    - PerceptualComparator: per-block Lab conversion and thresholding
    - Tests: Sharma et al. reference pairs

Tensor functions operate on torch tensors (3, H, W) or (B, 3, H, W), channel
axis first. Everything is computed in float64 on CPU.

Invariants:
    - sRGB 8-bit input is normalized to [0, 1] before linearization
    - Lab coordinates: L[0,100], a,b roughly [-128, 127]
    - Hue angles are degrees in [0, 360); trig always goes through _radians()
"""

import math
from typing import NamedTuple

import torch

from .compute import to_0_1


# sRGB → XYZ matrix (D65)
_SRGB_TO_XYZ = (
    (0.4124564, 0.3575761, 0.1804375),
    (0.2126729, 0.7151522, 0.0721750),
    (0.0193339, 0.1191920, 0.9503041),
)

# D65 reference white
_WHITE_D65 = (0.95047, 1.0, 1.08883)

_POW25_7 = 25.0 ** 7


class RgbColor(NamedTuple):
    """8-bit sRGB color; alpha is carried but never compared."""
    r: int
    g: int
    b: int
    a: int = 255


class LabColor(NamedTuple):
    """CIE L*a*b* coordinate (D65)."""
    L: float
    a: float
    b: float


def _radians(deg: torch.Tensor) -> torch.Tensor:
    return deg * (math.pi / 180.0)


def _degrees(rad: torch.Tensor) -> torch.Tensor:
    return rad * (180.0 / math.pi)


def _split_channels(img: torch.Tensor):
    """Return the three channel planes of a (3, H, W) or (B, 3, H, W) tensor."""
    if img.ndim == 3 and img.shape[0] == 3:
        return img[0], img[1], img[2]
    if img.ndim == 4 and img.shape[1] == 3:
        return img[:, 0], img[:, 1], img[:, 2]
    raise ValueError(f"Expected shape (3, H, W) or (B, 3, H, W), got {tuple(img.shape)}")


def _stack_channels(c0: torch.Tensor, c1: torch.Tensor, c2: torch.Tensor, ndim: int) -> torch.Tensor:
    return torch.stack([c0, c1, c2], dim=0 if ndim == 3 else 1)


def srgb_to_linear(img: torch.Tensor) -> torch.Tensor:
    """Convert sRGB [0,1] to linear RGB [0,1].

    Parameters
    ----------
    img : torch.Tensor
        sRGB image, any shape, range [0, 1]

    Returns
    -------
    torch.Tensor
        Linear RGB, same shape, range [0, 1]

    Notes
    -----
    Exact sRGB transfer function:
        - x / 12.92 for x <= 0.04045
        - ((x + 0.055) / 1.055)^2.4 otherwise
    """
    img = torch.clamp(img, 0.0, 1.0)
    linear = img / 12.92
    power = torch.pow((img + 0.055) / 1.055, 2.4)
    return torch.where(img <= 0.04045, linear, power)


def rgb_to_xyz(rgb: torch.Tensor) -> torch.Tensor:
    """Convert linear RGB to CIE XYZ (D65 illuminant).

    Parameters
    ----------
    rgb : torch.Tensor
        Linear RGB, shape (3, H, W) or (B, 3, H, W), range [0, 1]

    Returns
    -------
    torch.Tensor
        XYZ coordinates, same shape
    """
    r, g, b = _split_channels(rgb)
    x, y, z = (m[0] * r + m[1] * g + m[2] * b for m in _SRGB_TO_XYZ)
    return _stack_channels(x, y, z, rgb.ndim)


def xyz_to_lab(xyz: torch.Tensor) -> torch.Tensor:
    """Convert XYZ to CIE L*a*b* (D65 reference white).

    Parameters
    ----------
    xyz : torch.Tensor
        XYZ coordinates, shape (3, H, W) or (B, 3, H, W)

    Returns
    -------
    torch.Tensor
        Lab coordinates, same shape

    Notes
    -----
    Standard piecewise transform: cube root above (6/29)^3, linear below.
    """
    x, y, z = _split_channels(xyz)
    xn, yn, zn = _WHITE_D65

    delta = 6.0 / 29.0

    def f(t: torch.Tensor) -> torch.Tensor:
        linear = t / (3.0 * delta * delta) + (4.0 / 29.0)
        # clamp keeps pow away from negative bases in the unused branch
        power = torch.pow(torch.clamp(t, min=0.0), 1.0 / 3.0)
        return torch.where(t <= delta ** 3, linear, power)

    fx, fy, fz = f(x / xn), f(y / yn), f(z / zn)
    L = 116.0 * fy - 16.0
    a = 500.0 * (fx - fy)
    b = 200.0 * (fy - fz)
    return _stack_channels(L, a, b, xyz.ndim)


def rgb_to_lab(img_linear_rgb: torch.Tensor) -> torch.Tensor:
    """Convert linear RGB to CIE L*a*b* (composite of rgb_to_xyz and xyz_to_lab)."""
    return xyz_to_lab(rgb_to_xyz(img_linear_rgb))


def srgb8_to_lab(img: torch.Tensor) -> torch.Tensor:
    """Convert gamma-encoded 8-bit sRGB to Lab.

    Parameters
    ----------
    img : torch.Tensor
        uint8 (or integer-valued) sRGB, shape (3, H, W) or (B, 3, H, W),
        channels in [0, 255]

    Returns
    -------
    torch.Tensor
        float64 Lab, same shape
    """
    return rgb_to_lab(srgb_to_linear(to_0_1(img)))


def _hue_degrees(b: torch.Tensor, a_prime: torch.Tensor) -> torch.Tensor:
    hue = _degrees(torch.atan2(b, a_prime))
    hue = torch.where(hue < 0, hue + 360.0, hue)
    # hue is undefined on the gray axis; the formula fixes it at 0
    return torch.where((a_prime == 0) & (b == 0), torch.zeros_like(hue), hue)


def delta_e2000(
    lab1: torch.Tensor,
    lab2: torch.Tensor,
    kL: float = 1.0,
    kC: float = 1.0,
    kH: float = 1.0
) -> torch.Tensor:
    """Compute CIEDE2000 color difference (ΔE2000), unfloored.

    Parameters
    ----------
    lab1 : torch.Tensor
        First Lab image, shape (3, H, W) or (B, 3, H, W)
    lab2 : torch.Tensor
        Second Lab image, same shape as lab1
    kL, kC, kH : float
        Weighting factors for lightness, chroma, hue (default 1.0)

    Returns
    -------
    torch.Tensor
        ΔE2000 values, shape (H, W) or (B, H, W)

    Notes
    -----
    Implements the full formula (Sharma, Wu, Dalal 2005), including the
    zero-chroma branches for Δh' and the mean hue. Symmetric in its inputs.
    """
    if lab1.shape != lab2.shape:
        raise ValueError(f"Shape mismatch: {tuple(lab1.shape)} vs {tuple(lab2.shape)}")

    L1, a1, b1 = _split_channels(lab1)
    L2, a2, b2 = _split_channels(lab2)

    # Chroma and the a-axis correction G
    C1 = torch.sqrt(a1**2 + b1**2)
    C2 = torch.sqrt(a2**2 + b2**2)
    C_bar_7 = ((C1 + C2) / 2.0)**7
    G = 0.5 * (1.0 - torch.sqrt(C_bar_7 / (C_bar_7 + _POW25_7)))

    a1_prime = (1.0 + G) * a1
    a2_prime = (1.0 + G) * a2

    C1_prime = torch.sqrt(a1_prime**2 + b1**2)
    C2_prime = torch.sqrt(a2_prime**2 + b2**2)
    h1_prime = _hue_degrees(b1, a1_prime)
    h2_prime = _hue_degrees(b2, a2_prime)

    # Differences
    dL_prime = L2 - L1
    dC_prime = C2_prime - C1_prime

    chroma_product = C1_prime * C2_prime
    zero_chroma = chroma_product == 0

    dh = h2_prime - h1_prime
    dh_prime = torch.where(dh > 180.0, dh - 360.0, torch.where(dh < -180.0, dh + 360.0, dh))
    dh_prime = torch.where(zero_chroma, torch.zeros_like(dh_prime), dh_prime)

    dH_prime = 2.0 * torch.sqrt(chroma_product) * torch.sin(_radians(dh_prime) / 2.0)

    # Means
    L_bar_prime = (L1 + L2) / 2.0
    C_bar_prime = (C1_prime + C2_prime) / 2.0

    sum_h = h1_prime + h2_prime
    h_bar_prime = torch.where(
        torch.abs(h1_prime - h2_prime) <= 180.0,
        sum_h / 2.0,
        torch.where(sum_h < 360.0, (sum_h + 360.0) / 2.0, (sum_h - 360.0) / 2.0)
    )
    h_bar_prime = torch.where(zero_chroma, sum_h, h_bar_prime)

    # Weighting functions
    T = (1.0
         - 0.17 * torch.cos(_radians(h_bar_prime - 30.0))
         + 0.24 * torch.cos(_radians(2.0 * h_bar_prime))
         + 0.32 * torch.cos(_radians(3.0 * h_bar_prime + 6.0))
         - 0.20 * torch.cos(_radians(4.0 * h_bar_prime - 63.0)))

    d_theta = 30.0 * torch.exp(-((h_bar_prime - 275.0) / 25.0)**2)

    C_bar_prime_7 = C_bar_prime**7
    RC = torch.sqrt(C_bar_prime_7 / (C_bar_prime_7 + _POW25_7))

    L_bar_minus_50_sq = (L_bar_prime - 50.0)**2
    SL = 1.0 + (0.015 * L_bar_minus_50_sq) / torch.sqrt(20.0 + L_bar_minus_50_sq)
    SC = 1.0 + 0.045 * C_bar_prime
    SH = 1.0 + 0.015 * C_bar_prime * T

    RT = -2.0 * RC * torch.sin(_radians(2.0 * d_theta))

    l_term = dL_prime / (kL * SL)
    c_term = dC_prime / (kC * SC)
    h_term = dH_prime / (kH * SH)

    radicand = l_term**2 + c_term**2 + h_term**2 + RT * c_term * h_term
    return torch.sqrt(torch.clamp(radicand, min=0.0))


def perceptual_distance(lab1: torch.Tensor, lab2: torch.Tensor) -> torch.Tensor:
    """ΔE2000 with unit weights, floored to integer-valued floats.

    The flooring is part of the comparison contract: a pixel pair matches
    when this value is strictly below the tolerance.
    """
    return torch.floor(delta_e2000(lab1, lab2))


# ----------------------------------------------------------------------------
# Scalar API
# ----------------------------------------------------------------------------

def _lab_tensor(c: LabColor) -> torch.Tensor:
    return torch.tensor([c.L, c.a, c.b], dtype=torch.float64).view(3, 1, 1)


def srgb8_to_lab_color(color: RgbColor) -> LabColor:
    """Convert one 8-bit sRGB color (alpha ignored) to LabColor."""
    r, g, b = color[0], color[1], color[2]
    for name, value in zip("rgb", (r, g, b)):
        if not 0 <= value <= 255:
            raise ValueError(f"Channel {name}={value} out of range [0, 255]")
    rgb = torch.tensor([r, g, b], dtype=torch.uint8).view(3, 1, 1)
    L, a, b_ = srgb8_to_lab(rgb).view(3).tolist()
    return LabColor(L, a, b_)


def ciede2000(c1: LabColor, c2: LabColor) -> float:
    """Floored ΔE2000 between two LabColor values."""
    return float(perceptual_distance(_lab_tensor(c1), _lab_tensor(c2)).item())
