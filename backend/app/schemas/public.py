"""
Row -> JSON payloads shared by the routers. Keys are camelCase to match the frontend.
Passwords and raw resume bytes never leave through here.
"""
from ..models.application import JobApplication
from ..models.job import Job
from ..models.message import Message
from ..models.notification import Notification
from ..models.payment import Payment
from ..models.post import Post, PostComment
from ..models.user import User
from ..utils.timeutils import to_iso


def user_brief(user: User | None) -> dict | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "profilePicture": user.profile_picture or "",
        "headline": user.headline or "",
    }


def user_card(user: User) -> dict:
    """Brief plus the fields search results and suggestions show."""
    return {
        **user_brief(user),
        "bio": user.bio or "",
        "skills": list(user.skills or []),
        "location": user.location or "",
    }


def user_public(user: User, *, connections: list[User] | None = None) -> dict:
    payload = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "bio": user.bio or "",
        "headline": user.headline or "",
        "phone": user.phone or "",
        "address": user.address,
        "linkedinUrl": user.linkedin_url or "",
        "githubUrl": user.github_url or "",
        "portfolioUrl": user.portfolio_url or "",
        "websiteUrl": user.website_url or "",
        "skills": list(user.skills or []),
        "walletAddress": user.wallet_address or "",
        "walletType": user.wallet_type or "",
        "location": user.location or "",
        "profilePicture": user.profile_picture or "",
        "experience": list(user.experience or []),
        "education": list(user.education or []),
        "resume": user.resume,
        "profileViews": user.profile_views or 0,
        "isPremium": bool(user.is_premium),
        "premiumExpiresAt": to_iso(user.premium_expires_at),
        "appliedJobs": [application_for_applicant(a) for a in (user.applications or [])],
        "createdAt": to_iso(user.created_at),
        "updatedAt": to_iso(user.updated_at),
    }
    if connections is not None:
        payload["connections"] = [user_card(c) for c in connections]
    return payload


def candidate_profile(user: User) -> dict:
    """The profile fields match scoring reads."""
    return {
        "bio": user.bio or "",
        "skills": list(user.skills or []),
        "location": user.location or "",
        "experience": list(user.experience or []),
        "education": list(user.education or []),
    }


def job_public(job: Job, *, include_applicants: bool = False) -> dict:
    payload = {
        "id": job.id,
        "title": job.title,
        "description": job.description,
        "company": job.company,
        "location": job.location,
        "jobType": job.job_type,
        "workMode": job.work_mode,
        "experienceLevel": job.experience_level,
        "skills": list(job.skills or []),
        "tags": list(job.tags or []),
        "budget": job.budget,
        "salary": job.salary,
        "postedBy": user_brief(job.poster),
        "paymentVerified": bool(job.payment_verified),
        "transactionHash": job.transaction_hash or "",
        "blockchain": job.blockchain or "",
        "status": job.status,
        "views": job.views or 0,
        "applicantsCount": len(job.applicants or []),
        "expiresAt": to_iso(job.expires_at),
        "createdAt": to_iso(job.created_at),
        "updatedAt": to_iso(job.updated_at),
    }
    if include_applicants:
        payload["applicants"] = [application_for_poster(a) for a in job.applicants or []]
    return payload


def job_match_input(job: Job) -> dict:
    return {
        "title": job.title,
        "company": job.company,
        "location": job.location,
        "description": job.description,
        "skills": list(job.skills or []),
        "experienceLevel": job.experience_level,
        "jobType": job.job_type,
        "workMode": job.work_mode,
    }


def _resume_meta(a: JobApplication) -> dict | None:
    if not a.resume_filename:
        return None
    return {
        "filename": a.resume_filename,
        "contentType": a.resume_content_type,
        "uploadedAt": to_iso(a.resume_uploaded_at),
    }


def application_for_poster(a: JobApplication) -> dict:
    return {
        "id": a.id,
        "applicant": user_card(a.user) if a.user else None,
        "coverLetter": a.cover_letter or "",
        "appliedAt": to_iso(a.applied_at),
        "status": a.status,
        "resume": _resume_meta(a),
    }


def application_for_applicant(a: JobApplication) -> dict:
    return {
        "jobId": a.job_id,
        "appliedAt": to_iso(a.applied_at),
        "status": a.status,
        "coverLetter": a.cover_letter or "",
    }


def comment_public(c: PostComment) -> dict:
    return {
        "id": c.id,
        "user": user_brief(c.user),
        "content": c.content,
        "createdAt": to_iso(c.created_at),
    }


def post_public(post: Post) -> dict:
    return {
        "id": post.id,
        "content": post.content,
        "author": user_brief(post.author),
        "postType": post.post_type,
        "images": list(post.images or []),
        "tags": list(post.tags or []),
        "likes": [like.user_id for like in post.likes or []],
        "likesCount": len(post.likes or []),
        "comments": [comment_public(c) for c in post.comments or []],
        "shares": post.shares or 0,
        "visibility": post.visibility,
        "isPinned": bool(post.is_pinned),
        "createdAt": to_iso(post.created_at),
        "updatedAt": to_iso(post.updated_at),
    }


def message_public(m: Message) -> dict:
    return {
        "id": m.id,
        "conversationId": m.conversation_id,
        "sender": user_brief(m.sender),
        "receiver": user_brief(m.receiver),
        "content": m.content,
        "read": bool(m.read),
        "readAt": to_iso(m.read_at),
        "createdAt": to_iso(m.created_at),
    }


def notification_public(n: Notification) -> dict:
    return {
        "id": n.id,
        "recipientId": n.recipient_id,
        "sender": user_brief(n.sender),
        "type": n.type,
        "post": {"id": n.post.id, "content": n.post.content} if n.post else None,
        "job": {"id": n.job.id, "title": n.job.title, "company": n.job.company} if n.job else None,
        "message": n.message,
        "read": bool(n.read),
        "createdAt": to_iso(n.created_at),
    }


def payment_public(p: Payment) -> dict:
    return {
        "id": p.id,
        "transactionHash": p.transaction_hash,
        "blockchain": p.blockchain,
        "amount": p.amount,
        "currency": p.currency,
        "fromAddress": p.from_address,
        "toAddress": p.to_address,
        "purpose": p.purpose,
        "relatedJob": {"id": p.related_job.id, "title": p.related_job.title, "company": p.related_job.company}
        if p.related_job
        else None,
        "status": p.status,
        "blockNumber": p.block_number,
        "gasUsed": p.gas_used,
        "createdAt": to_iso(p.created_at),
        "confirmedAt": to_iso(p.confirmed_at),
    }
