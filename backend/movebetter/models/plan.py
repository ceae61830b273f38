from sqlalchemy import Column, String, Date, Text, Boolean, Integer, DateTime, ForeignKey, JSON
from .base import Base, TimestampMixin, generate_uuid


class Exercise(Base, TimestampMixin):
    __tablename__ = "exercises"

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    difficulty_level = Column(Integer, nullable=True)  # 1 (beginner) .. 3 (advanced)
    category = Column(String(100), nullable=True)
    video_url = Column(String(500), nullable=True)
    image_url = Column(String(500), nullable=True)
    equipment_needed = Column(JSON, default=list)
    is_active = Column(Boolean, nullable=False, default=True)


class TreatmentPlan(Base, TimestampMixin):
    __tablename__ = "treatment_plans"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    progress_percentage = Column(Integer, nullable=False, default=0)
    created_by = Column(String, ForeignKey("profiles.id"), nullable=True)


class PlanExercise(Base, TimestampMixin):
    __tablename__ = "plan_exercises"

    id = Column(String, primary_key=True, default=generate_uuid)
    treatment_plan_id = Column(
        String, ForeignKey("treatment_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    exercise_id = Column(String, ForeignKey("exercises.id"), nullable=False)
    day_number = Column(Integer, nullable=False)
    sets = Column(Integer, default=1)
    repetitions = Column(Integer, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)


class PatientScore(Base, TimestampMixin):
    """Gamification points shown on the dashboard and the ranking page."""
    __tablename__ = "patient_scores"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, unique=True)
    total_points = Column(Integer, nullable=False, default=0)
    completed_exercises = Column(Integer, nullable=False, default=0)
    streak_days = Column(Integer, nullable=False, default=0)
    last_activity_date = Column(Date, nullable=True)
    level_number = Column(Integer, nullable=False, default=1)
