import enum
from datetime import datetime

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import attribute_keyed_dict

# Initialize SQLAlchemy
db = SQLAlchemy()


class ActivityType(str, enum.Enum):
    ACADEMIC = 'academic'
    CERTIFICATION = 'certification'
    INTERNSHIP = 'internship'
    WORKSHOP = 'workshop'
    SEMINAR = 'seminar'
    EVENT = 'event'
    COMPETITION = 'competition'
    ACHIEVEMENT = 'achievement'
    PROJECT = 'project'
    SPORTS = 'sports'
    CULTURAL = 'cultural'
    TECHNICAL = 'technical'
    SOCIAL_SERVICE = 'social-service'
    RESEARCH = 'research'
    PUBLICATION = 'publication'
    OTHER = 'other'


class ActivityCategory(str, enum.Enum):
    CURRICULAR = 'curricular'
    CO_CURRICULAR = 'co-curricular'
    EXTRA_CURRICULAR = 'extra-curricular'


class ActivityLevel(str, enum.Enum):
    # Declaration order is rank order
    DEPARTMENT = 'department'
    COLLEGE = 'college'
    UNIVERSITY = 'university'
    STATE = 'state'
    NATIONAL = 'national'
    INTERNATIONAL = 'international'


class AchievementType(str, enum.Enum):
    PARTICIPATION = 'participation'
    WINNER = 'winner'
    RUNNER_UP = 'runner-up'
    FINALIST = 'finalist'
    CERTIFICATE = 'certificate'
    PUBLICATION = 'publication'
    NONE = 'none'


class ActivityStatus(str, enum.Enum):
    PENDING = 'pending'
    UNDER_REVIEW = 'under-review'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    @property
    def is_terminal(self):
        return self in (ActivityStatus.APPROVED, ActivityStatus.REJECTED)


OPEN_STATUSES = (ActivityStatus.PENDING, ActivityStatus.UNDER_REVIEW)


class BadgeTier(str, enum.Enum):
    BRONZE = 'bronze'
    SILVER = 'silver'
    GOLD = 'gold'


class NotificationType(str, enum.Enum):
    ACTIVITY_SUBMITTED = 'activity-submitted'
    ACTIVITY_APPROVED = 'activity-approved'
    ACTIVITY_REJECTED = 'activity-rejected'
    ACTIVITY_UNDER_REVIEW = 'activity-under-review'
    BADGE_EARNED = 'badge-earned'
    MENTION = 'mention'
    REMINDER = 'reminder'
    SYSTEM = 'system'
    ANNOUNCEMENT = 'announcement'


class NotificationPriority(str, enum.Enum):
    LOW = 'low'
    NORMAL = 'normal'
    HIGH = 'high'
    URGENT = 'urgent'


class Role(str, enum.Enum):
    STUDENT = 'student'
    FACULTY = 'faculty'
    ADMIN = 'admin'


def enum_column(enum_cls, **kwargs):
    """String-backed enum column storing the member *values* (e.g. 'under-review')."""
    return db.Column(
        db.Enum(
            enum_cls,
            values_callable=lambda members: [m.value for m in members],
            native_enum=False,
            validate_strings=True,
            length=32,
        ),
        **kwargs
    )


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    role = enum_column(Role, nullable=False, default=Role.STUDENT)

    full_name = db.Column(db.String(100), nullable=False, default="Unknown")
    department = db.Column(db.String(100), nullable=True, index=True)  # Organizational unit

    # Generic ID: Roll Number (Student) or Employee ID (Faculty)
    institution_id = db.Column(db.String(64), unique=True, nullable=True, index=True)
    mentor_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    is_active = db.Column(db.Boolean, default=True)

    # Student aggregate, mutated only by the review workflow
    activity_score = db.Column(db.Integer, nullable=False, default=0)
    total_credits = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    mentor = db.relationship('User', remote_side=[id], backref=db.backref('mentees', lazy=True))
    badges = db.relationship(
        'Badge',
        collection_class=attribute_keyed_dict('tier'),
        back_populates='student',
        cascade='all, delete-orphan',
    )

    def __repr__(self):
        return f'<User {self.email}>'

    def is_admin(self):
        return self.role == Role.ADMIN

    def is_faculty(self):
        return self.role == Role.FACULTY

    def is_student(self):
        return self.role == Role.STUDENT

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role.value,
            "department": self.department,
            "institution_id": self.institution_id,
            "activity_score": self.activity_score,
            "total_credits": self.total_credits,
            "badges": [self.badges[t].to_dict() for t in BadgeTier if t in self.badges],
        }


class Badge(db.Model):
    __tablename__ = 'badges'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'tier', name='uq_badge_student_tier'),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    tier = enum_column(BadgeTier, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    earned_at = db.Column(db.DateTime, default=datetime.utcnow)

    student = db.relationship('User', back_populates='badges')

    def __repr__(self):
        return f'<Badge {self.tier.value} for {self.student_id}>'

    def to_dict(self):
        return {
            "tier": self.tier.value,
            "name": self.name,
            "earned_at": self.earned_at.isoformat() if self.earned_at else None,
        }


class Activity(db.Model):
    __tablename__ = 'activities'
    __table_args__ = (
        db.Index('ix_activity_student_status', 'student_id', 'status'),
        db.Index('ix_activity_type_status', 'type', 'status'),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    type = enum_column(ActivityType, nullable=False)
    category = enum_column(ActivityCategory, nullable=False)
    level = enum_column(ActivityLevel, nullable=False, default=ActivityLevel.COLLEGE)
    achievement_type = enum_column(AchievementType, nullable=False, default=AchievementType.PARTICIPATION)

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    organizer = db.Column(db.String(200), nullable=True)
    location = db.Column(db.String(200), nullable=True)
    rank = db.Column(db.String(50), nullable=True)
    certificate_number = db.Column(db.String(100), nullable=True)
    github_link = db.Column(db.String(255), nullable=True)
    project_link = db.Column(db.String(255), nullable=True)
    semester = db.Column(db.String(20), nullable=True)
    academic_year = db.Column(db.String(20), nullable=True)
    skills = db.Column(db.JSON, nullable=False, default=list)

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)
    duration = db.Column(db.Integer, nullable=False, default=0)  # whole days

    score = db.Column(db.Integer, nullable=False, default=0)
    credits = db.Column(db.Integer, nullable=False, default=0)

    status = enum_column(ActivityStatus, nullable=False, default=ActivityStatus.PENDING, index=True)
    reviewed_by_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    remarks = db.Column(db.Text, nullable=True)
    is_verified = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    student = db.relationship('User', foreign_keys=[student_id], backref=db.backref('activities', lazy=True, cascade="all, delete-orphan"))
    reviewed_by = db.relationship('User', foreign_keys=[reviewed_by_id], backref=db.backref('reviewed_activities', lazy=True))
    documents = db.relationship('ActivityDocument', backref='activity', lazy=True, cascade="all, delete-orphan",
                                order_by='ActivityDocument.id')

    def __repr__(self):
        return f'<Activity {self.id} - {self.title}>'

    def to_dict(self):
        return {
            "id": self.id,
            "student_id": self.student_id,
            "type": self.type.value,
            "category": self.category.value,
            "level": self.level.value,
            "achievement_type": self.achievement_type.value,
            "title": self.title,
            "description": self.description,
            "organizer": self.organizer,
            "location": self.location,
            "rank": self.rank,
            "certificate_number": self.certificate_number,
            "github_link": self.github_link,
            "project_link": self.project_link,
            "semester": self.semester,
            "academic_year": self.academic_year,
            "skills": list(self.skills or []),
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "duration": self.duration,
            "score": self.score,
            "credits": self.credits,
            "status": self.status.value,
            "reviewed_by_id": self.reviewed_by_id,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "remarks": self.remarks,
            "is_verified": self.is_verified,
            "documents": [d.to_dict() for d in self.documents],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ActivityDocument(db.Model):
    """Metadata for a file held by the external document store."""
    __tablename__ = 'activity_documents'

    id = db.Column(db.Integer, primary_key=True)
    activity_id = db.Column(db.Integer, db.ForeignKey('activities.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    url = db.Column(db.String(500), nullable=False)
    mime_type = db.Column(db.String(100), nullable=True)
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "name": self.name,
            "url": self.url,
            "mime_type": self.mime_type,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }


class Notification(db.Model):
    __tablename__ = 'notifications'
    __table_args__ = (
        db.Index('ix_notification_recipient_read', 'recipient_id', 'is_read', 'created_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    recipient_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    sender_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    type = enum_column(NotificationType, nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    link = db.Column(db.String(255), nullable=True)
    related_activity_id = db.Column(db.Integer, db.ForeignKey('activities.id', ondelete='SET NULL'), nullable=True)
    priority = enum_column(NotificationPriority, nullable=False, default=NotificationPriority.NORMAL)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    recipient = db.relationship('User', foreign_keys=[recipient_id])
    sender = db.relationship('User', foreign_keys=[sender_id])

    def __repr__(self):
        return f'<Notification {self.type.value} -> {self.recipient_id}>'

    def to_dict(self):
        return {
            "id": self.id,
            "recipient_id": self.recipient_id,
            "sender_id": self.sender_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "link": self.link,
            "related_activity_id": self.related_activity_id,
            "priority": self.priority.value,
            "is_read": self.is_read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
