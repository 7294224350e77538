import math

from .math_tools import MathTools


class OneRMCalculators:
    """Alternative one-rep max estimators and a weighted composite."""

    # share of 1RM lifted at a given RPE
    RPE_PERCENTAGES: dict[float, float] = {
        10: 1.0,
        9.5: 0.975,
        9: 0.95,
        8.5: 0.925,
        8: 0.9,
        7.5: 0.875,
        7: 0.85,
        6.5: 0.825,
        6: 0.8,
        5: 0.75,
    }

    @staticmethod
    def epley(weight: float, reps: int) -> float:
        return MathTools.epley_1rm(weight, reps)

    @staticmethod
    def brzycki(weight: float, reps: int) -> float:
        """Conservative estimate, most accurate for low rep sets."""
        if reps <= 1 or reps >= 37:
            return float(weight)
        return weight * (36 / (37 - reps))

    @staticmethod
    def lombardi(weight: float, reps: int) -> float:
        if reps <= 1:
            return float(weight)
        return weight * reps**0.10

    @staticmethod
    def mayhew(weight: float, reps: int) -> float:
        if reps <= 1:
            return float(weight)
        return (100 * weight) / (52.2 + 41.9 * math.exp(-0.055 * reps))

    @staticmethod
    def _formula_weights(reps: int) -> dict[str, float]:
        if reps <= 3:
            return {"epley": 0.4, "brzycki": 0.35, "lombardi": 0.1, "mayhew": 0.15}
        if reps <= 6:
            return {"epley": 0.35, "brzycki": 0.3, "lombardi": 0.15, "mayhew": 0.2}
        if reps <= 10:
            return {"epley": 0.25, "brzycki": 0.25, "lombardi": 0.25, "mayhew": 0.25}
        return {"epley": 0.2, "brzycki": 0.15, "lombardi": 0.4, "mayhew": 0.25}

    @staticmethod
    def recommended_method(reps: int) -> str:
        if reps <= 3:
            return "brzycki"
        if reps > 10:
            return "lombardi"
        if 6 <= reps <= 8:
            return "mayhew"
        return "epley"

    @classmethod
    def rpe_adjustment(cls, rpe: float) -> float:
        """Return the multiplier scaling a submaximal estimate up to 1RM."""
        nearest = round(rpe * 2) / 2
        return 1 / cls.RPE_PERCENTAGES.get(nearest, 0.8)

    @classmethod
    def composite(cls, weight: float, reps: int, rpe: float | None = None) -> dict:
        """Return every formula's estimate, their weighted blend and agreement."""
        estimates = {
            "epley": cls.epley(weight, reps),
            "brzycki": cls.brzycki(weight, reps),
            "lombardi": cls.lombardi(weight, reps),
            "mayhew": cls.mayhew(weight, reps),
        }
        if rpe is not None:
            adj = cls.rpe_adjustment(rpe)
            estimates = {k: v * adj for k, v in estimates.items()}
        weights = cls._formula_weights(reps)
        composite = sum(estimates[k] * weights[k] for k in estimates)
        cv = MathTools.coefficient_of_variation(estimates.values())
        return {
            "estimates": {k: round(v, 2) for k, v in estimates.items()},
            "composite": round(composite, 2),
            "confidence": round(MathTools.clamp(1 - cv * 2, 0.0, 1.0), 3),
            "recommended_method": cls.recommended_method(reps),
        }

    @staticmethod
    def validate_data(weight: float, reps: int, rpe: float | None = None) -> dict:
        """Return validity, quality issues and a confidence for one set."""
        issues: list[str] = []
        if weight <= 0:
            return {"valid": False, "issues": ["weight must be positive"], "confidence": 0.0}
        if reps <= 0 or reps > 50:
            return {"valid": False, "issues": ["reps must be between 1 and 50"], "confidence": 0.0}
        confidence = 1.0
        if rpe is not None and not 1 <= rpe <= 10:
            issues.append("rpe outside the 1-10 scale")
            confidence *= 0.8
        if reps > 15:
            issues.append("estimates are less accurate above 15 reps")
            confidence *= 0.7
        if reps == 1:
            issues.append("single reps may not reflect a true max")
            confidence *= 0.9
        if rpe is not None and rpe < 6:
            issues.append("low rpe suggests a submaximal effort")
            confidence *= 0.8
        if rpe is not None and rpe > 9.5 and reps > 5:
            issues.append("very high rpe on a long set may hide form breakdown")
            confidence *= 0.8
        return {"valid": True, "issues": issues, "confidence": round(max(0.1, confidence), 3)}
