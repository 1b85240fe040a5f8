"""Central module containing numeric defaults and constant tables"""

from __future__ import annotations

# Significant digits used when no precision context is active
DEFAULT_PRECISION: int = 50
# Extra digits carried internally by series evaluations (pi, sin, atan, ...)
GUARD_DIGITS: int = 10

###############################################################################
# Gauss-Legendre quadrature (nodes on [-1, 1], 50 digits)
###############################################################################

GAUSS_LEGENDRE_5_NODES = (
    "-0.90617984593866399279762687829939296512565191076",
    "-0.53846931010568309103631442070020880496728660690",
    "0",
    "0.53846931010568309103631442070020880496728660690",
    "0.90617984593866399279762687829939296512565191076",
)
GAUSS_LEGENDRE_5_WEIGHTS = (
    "0.23692688505618908751426404071991736264326000221",
    "0.47862867049936646804129151483563819291229555035",
    "0.56888888888888888888888888888888888888888888889",
    "0.47862867049936646804129151483563819291229555035",
    "0.23692688505618908751426404071991736264326000221",
)
GAUSS_LEGENDRE_10_NODES = (
    "-0.97390652851717172007796401208445205342826994669",
    "-0.86506336668898451073209668842349304852754301497",
    "-0.67940956829902440623432736511487357576929471183",
    "-0.43339539412924719079926594316578416220007183765",
    "-0.14887433898163121088482600112971998461756485942",
    "0.14887433898163121088482600112971998461756485942",
    "0.43339539412924719079926594316578416220007183765",
    "0.67940956829902440623432736511487357576929471183",
    "0.86506336668898451073209668842349304852754301497",
    "0.97390652851717172007796401208445205342826994669",
)
GAUSS_LEGENDRE_10_WEIGHTS = (
    "0.06667134430868813759356880989333179285786483432",
    "0.14945134915058059314577633965769733240255644326",
    "0.21908636251598204399553493422816219682140867715",
    "0.26926671930999635509122692156946935285975993846",
    "0.29552422471475287017389299465133832942104671702",
    "0.29552422471475287017389299465133832942104671702",
    "0.26926671930999635509122692156946935285975993846",
    "0.21908636251598204399553493422816219682140867715",
    "0.14945134915058059314577633965769733240255644326",
    "0.06667134430868813759356880989333179285786483432",
)

###############################################################################
# Bezier self-checks
###############################################################################

BEZIER_VERIFY_TOLERANCE: str = "1e-40"
BBOX_VERIFY_SAMPLES: int = 100

###############################################################################
# Arc length
###############################################################################

ARC_LENGTH_TOLERANCE: str = "1e-20"
ARC_LENGTH_MAX_DEPTH: int = 60
ARC_LENGTH_MIN_DEPTH: int = 3
INVERSE_ARC_LENGTH_TOLERANCE: str = "1e-12"
INVERSE_ARC_LENGTH_MAX_ITERATIONS: int = 10_000
# Below this speed Newton steps are replaced by bisection (cusp)
NEAR_ZERO_SPEED: str = "1e-30"
# Accepted errors of the arc length self-checks
ARC_LENGTH_VERIFY_TOLERANCE: str = "1e-18"

###############################################################################
# Intersections
###############################################################################

INTERSECTION_MAX_DEPTH: int = 50
INTERSECTION_FLATNESS: str = "1e-6"
INTERSECTION_MIN_SEPARATION: str = "1e-8"
SELF_INTERSECTION_MIN_SEPARATION: str = "0.01"
MAX_NEWTON_ITERATIONS: int = 50
# Flat piece pairs examined before a curve pair counts as near-coincident
INTERSECTION_MAX_CANDIDATES: int = 500
ROOT_MAX_ITERATIONS: int = 400

###############################################################################
# Matrix exponential
###############################################################################

MATRIX_EXP_MAX_ITERATIONS: int = 120
MATRIX_EXP_MAX_SQUARINGS: int = 50

###############################################################################
# Units (CSS reference pixel)
###############################################################################

CSS_DPI: int = 96
DEFAULT_FONT_SIZE: int = 16
CM_PER_INCH: str = "2.54"
MM_PER_INCH: str = "25.4"
PT_PER_INCH: int = 72
PC_PER_INCH: int = 6
