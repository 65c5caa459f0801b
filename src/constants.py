"""
Shared constants used across multiple modules.
Single source of truth for metric names and rule thresholds.
"""

# Candidate numeric metrics for pairwise correlation (DailyMetricRecord fields)
CORRELATION_METRICS = [
    "sleep_score", "sleep_efficiency", "sleep_duration",
    "recovery_score", "hrv", "resting_hr",
    "calories", "protein", "carbs", "fats",
    "workout_strain", "workout_duration",
    "weight", "adherence_score",
]

# Human-readable labels for explanations and summaries
METRIC_LABELS = {
    "sleep_score":       "Sleep score",
    "sleep_efficiency":  "Sleep efficiency",
    "sleep_duration":    "Sleep duration",
    "recovery_score":    "Recovery score",
    "hrv":               "HRV",
    "resting_hr":        "Resting HR",
    "calories":          "Calories",
    "protein":           "Protein",
    "carbs":             "Carbs",
    "fats":              "Fats",
    "workout_strain":    "Workout strain",
    "workout_duration":  "Workout duration",
    "weight":            "Body weight",
    "adherence_score":   "Plan adherence",
    "strength_sessions": "Strength sessions",
}

# Workout types (Whoop activity names, lower-cased) that count as a strength session
STRENGTH_WORKOUT_TYPES = {
    "weightlifting", "powerlifting", "functional fitness",
    "strength trainer", "strength training", "crossfit",
}

MS_PER_HOUR = 1000 * 60 * 60

# Correlation strength boundaries on |r|
STRONG_CORRELATION = 0.7
MODERATE_CORRELATION = 0.4
MIN_PAIRED_OBSERVATIONS = 3

# Recovery (0-100)
RECOVERY_WARNING = 50
RECOVERY_CRITICAL = 30
RECOVERY_RECOMMENDATION = 60
RECOVERY_AVG_MARGIN = 10
RECOVERY_AVG_WINDOW = 14

# HRV ratios against the trailing rolling average
HRV_WINDOW = 7
HRV_ALERT_RATIO = 0.8
HRV_LOW_RATIO = 0.9
HRV_HIGH_RATIO = 1.1

# Sleep efficiency (%)
SLEEP_EFFICIENCY_WARNING = 75
SLEEP_EFFICIENCY_CRITICAL = 65
SLEEP_EFFICIENCY_INSIGHT = 80
SLEEP_EFFICIENCY_TARGET = 85

# Sleep duration (hours)
SLEEP_HOURS_WARNING = 6.5
SLEEP_HOURS_CRITICAL = 5.5
SLEEP_HOURS_INSIGHT = 7.0
SLEEP_HOURS_TARGET = 7.5

# Weekly strain: sum over the trailing 7 workout entries
STRAIN_WINDOW = 7
STRAIN_BAND_LOW = 50
STRAIN_BAND_HIGH = 80
STRAIN_CRITICAL = 100
STRAIN_SCORE_PEAK = 70

# Strength consistency: sessions in the trailing 7 days
CONSISTENCY_WINDOW_DAYS = 7
CONSISTENCY_TARGET_SESSIONS = 3

# Composite health score weights (fractions of 1.0)
HEALTH_SCORE_WEIGHTS = {
    "recovery":     0.30,
    "sleep":        0.25,
    "training":     0.20,
    "consistency":  0.15,
    "hrv":          0.10,
}

PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}
