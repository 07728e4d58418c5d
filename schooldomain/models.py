"""
Database Models for the School Domains Application

This module defines the registry tables using SQLAlchemy ORM:
School (one per registered domain) and Subdomain (typed pages owned by a school).
"""

from datetime import datetime, timezone

from schooldomain.extensions import db
from schooldomain.domain.enums import Plan


def utcnow():
    """Naive UTC timestamp, matching how the columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    if value is None:
        return None
    return value.isoformat(timespec='milliseconds') + 'Z'


class School(db.Model):
    """A registered school domain"""

    __tablename__ = 'schools'

    id = db.Column(db.Integer, primary_key=True)
    domain = db.Column(db.String(16), unique=True, nullable=False, index=True)
    school = db.Column(db.String(200), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    plan = db.Column(db.String(20), nullable=False, default=Plan.DEFAULT)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # Relationships
    subdomains = db.relationship(
        'Subdomain',
        back_populates='owner',
        order_by='Subdomain.id',
        cascade='all, delete-orphan',
        lazy='selectin',
    )

    def to_dict(self, include_subdomains=True):
        data = {
            'domain': self.domain,
            'school': self.school,
            'name': self.name,
            'email': self.email,
            'plan': self.plan,
            'createdAt': _iso(self.created_at),
        }
        if include_subdomains:
            data['subdomains'] = [s.to_dict() for s in self.subdomains]
        return data

    def __repr__(self):
        return f'<School {self.domain}>'


class Subdomain(db.Model):
    """A typed page scoped to one school"""

    __tablename__ = 'subdomains'
    __table_args__ = (
        db.UniqueConstraint('school_id', 'subdomain', name='uq_subdomains_school_subdomain'),
    )

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(
        db.Integer,
        db.ForeignKey('schools.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    subdomain = db.Column(db.String(63), nullable=False)
    type = db.Column(db.String(40), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    # Stored once at creation; never re-derived.
    access_link = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    owner = db.relationship('School', back_populates='subdomains')

    def to_dict(self):
        return {
            'subdomain': self.subdomain,
            'type': self.type,
            'name': self.name,
            'description': self.description or '',
            'accessLink': self.access_link,
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Subdomain {self.access_link}>'
