# models.py

from datetime import datetime, timezone

from resume_analyzer.extensions import db


class UserProfile(db.Model):
    __tablename__ = "user_profiles"
    id = db.Column(db.String, primary_key=True)  # token subject
    email = db.Column(db.String, index=True)
    name = db.Column(db.String)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self):
        return f"<UserProfile {self.id}>"


class Resume(db.Model):
    __tablename__ = "resumes"

    STATUS_UPLOADED = "uploaded"
    STATUS_ANALYZING = "analyzing"
    STATUS_ANALYZED = "analyzed"
    STATUS_FAILED = "failed"
    VALID_STATES = {STATUS_UPLOADED, STATUS_ANALYZING, STATUS_ANALYZED, STATUS_FAILED}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String, db.ForeignKey("user_profiles.id"), nullable=False)
    s3_bucket = db.Column(db.String)  # S3 bucket name
    s3_key = db.Column(db.String, index=True)  # S3 object key
    original_filename = db.Column(db.String)  # Original filename from user
    file_size = db.Column(db.BigInteger)  # File size in bytes
    content_type = db.Column(db.String)  # MIME type
    parsed_text = db.Column(db.Text, nullable=True)
    analysis_json = db.Column(db.JSON, nullable=True)
    analysis_version = db.Column(db.String, nullable=True)
    status = db.Column(db.String, nullable=False, default=STATUS_UPLOADED, index=True)
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    analyzed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    user = db.relationship("UserProfile", backref=db.backref("resumes", lazy="dynamic"))

    def __repr__(self):
        return f"<Resume {self.id} - {self.original_filename} ({self.status})>"

    def to_dict(self) -> dict:
        """Summary used by list/upload endpoints; the full analysis is served separately."""
        score = None
        if isinstance(self.analysis_json, dict):
            score = self.analysis_json.get("score")
        return {
            "id": self.id,
            "fileName": self.original_filename,
            "fileKey": self.s3_key,
            "fileSize": self.file_size,
            "fileType": self.content_type,
            "status": self.status,
            "score": score,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "analyzedAt": self.analyzed_at.isoformat() if self.analyzed_at else None,
        }

    @staticmethod
    def get_owned(resume_id: int, user_id: str):
        """Fetch a resume only if it belongs to ``user_id``."""
        return Resume.query.filter_by(id=resume_id, user_id=user_id).first()
