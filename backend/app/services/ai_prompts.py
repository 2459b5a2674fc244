from typing import Any


def _join(items: Any, sep: str = ", ") -> str:
    if not items:
        return ""
    return sep.join(str(x) for x in items if x)


def extract_skills_prompt(*, text: str) -> str:
    return (
        "Extract technical skills, soft skills, and tools from the following text. "
        "Return ONLY a JSON array of strings, nothing else. Each skill should be concise (1-3 words). "
        'Example: ["JavaScript", "React", "Node.js", "Team Leadership", "Problem Solving"]\n\n'
        f"Text: {text or ''}"
    )


def resume_parse_prompt(*, resume_text: str) -> str:
    return (
        "Parse this resume and extract structured information in JSON format with these fields:\n"
        "- skills: array of technical and professional skills\n"
        "- experience: array of objects with {title, company, location, startDate, endDate, current (boolean), description}\n"
        "- education: array of objects with {degree, institution, location, startYear, endYear, fieldOfStudy, gpa}\n"
        "- name: candidate's full name\n"
        "- phone: phone number with country code if available\n"
        "- email: email address\n"
        "- location: current location/city\n"
        "- address: object with {street, city, state, zipCode, country}\n"
        '- headline: professional headline or title (e.g., "Senior Software Engineer")\n'
        "- bio: a brief professional summary (2-3 sentences)\n"
        "- linkedinUrl: LinkedIn profile URL if mentioned\n"
        "- githubUrl: GitHub profile URL if mentioned\n"
        "- portfolioUrl: Portfolio website URL if mentioned\n"
        "- websiteUrl: Personal website URL if mentioned\n\n"
        "Resume:\n"
        "-----\n"
        f"{resume_text or ''}\n"
        "-----\n\n"
        "Return ONLY valid JSON, no markdown or explanation."
    )


def bio_prompt(*, name: str, headline: str, skills: list, experience: list, education: list) -> str:
    exp = _join(f"{e.get('title', '')} at {e.get('company', '')}" for e in experience if isinstance(e, dict))
    edu = _join(f"{e.get('degree', '')} from {e.get('institution', '')}" for e in education if isinstance(e, dict))
    return (
        'Write a professional "About Me" bio in FIRST PERSON (2-3 sentences, max 200 words) for this '
        'person\'s profile. Write as if THEY are introducing themselves (use "I am", "I have", "My experience"). '
        "Focus on their expertise, experience, and value proposition. Return ONLY the bio text starting with "
        '"I am" or "I\'m", no quotes or extra formatting.\n\n'
        f"Name: {name or ''}\n"
        f"Headline: {headline or ''}\n"
        f"Skills: {_join(skills)}\n"
        f"Experience: {exp}\n"
        f"Education: {edu}\n"
    )


def cover_letter_prompt(*, name: str, skills: list, bio: str, job_title: str, company: str, job_description: str) -> str:
    return (
        "Write a professional cover letter (max 250 words) for this application. "
        "Return ONLY the cover letter text.\n\n"
        f"Applicant: {name or ''}\n"
        f"Skills: {_join(skills)}\n"
        f"Bio: {bio or ''}\n\n"
        f"Job: {job_title or ''} at {company or ''}\n"
        f"Description: {job_description or ''}"
    )


def enhance_description_prompt(*, title: str, description: str) -> str:
    return (
        "Improve this job description to be more professional and attractive. Keep it concise (max 300 words). "
        "Return ONLY the enhanced description text, nothing else.\n\n"
        f"Title: {title or ''}\n"
        f"Current Description: {description or ''}"
    )


def career_tips_prompt(*, skills: list, bio: str, location: str) -> str:
    return (
        "Based on this user profile, suggest 3 career tips or actions they should take. "
        "Return ONLY a JSON array of strings.\n\n"
        "User Profile:\n"
        f"Skills: {_join(skills)}\n"
        f"Bio: {bio or ''}\n"
        f"Location: {location or ''}\n\n"
        'Return format: ["tip1", "tip2", "tip3"]'
    )


def job_match_prompt(*, candidate: dict, job: dict, total_years: float) -> str:
    experience = candidate.get("experience") or []
    education = candidate.get("education") or []

    exp_lines = "\n".join(
        f"- {e.get('title', '')} at {e.get('company', '')} "
        f"({e.get('startYear') or 'N/A'} - {'Present' if e.get('current') else e.get('endYear') or 'N/A'})"
        for e in experience
        if isinstance(e, dict)
    ) or "No work experience listed"
    edu_lines = "\n".join(
        f"- {e.get('degree', '')} in {e.get('fieldOfStudy') or 'N/A'} from {e.get('institution', '')} "
        f"({e.get('startYear') or ''} - {e.get('endYear') or ''})"
        for e in education
        if isinstance(e, dict)
    ) or "No education listed"

    return (
        "You are an expert career advisor and recruiter. Analyze the match between this candidate and job posting.\n\n"
        "Candidate Profile:\n"
        f"Bio: {candidate.get('bio') or 'No bio provided'}\n"
        f"Skills: {_join(candidate.get('skills')) or 'None listed'}\n"
        f"Years of Experience: {int(total_years)}\n"
        f"Location: {candidate.get('location') or 'Not specified'}\n\n"
        f"Work Experience:\n{exp_lines}\n\n"
        f"Education:\n{edu_lines}\n\n"
        "Job Posting:\n"
        f"Title: {job.get('title', '')}\n"
        f"Company: {job.get('company', '')}\n"
        f"Location: {job.get('location', '')}\n"
        f"Description: {job.get('description', '')}\n"
        f"Required Skills: {_join(job.get('skills'))}\n"
        f"Experience Level: {job.get('experienceLevel', '')}\n"
        f"Job Type: {job.get('jobType', '')}\n"
        f"Work Mode: {job.get('workMode', '')}\n\n"
        "Provide a detailed analysis in JSON format with these fields:\n"
        "{\n"
        '  "matchScore": <number 0-100 based on skills overlap, experience level match, location compatibility>,\n'
        "  \"matchCategory\": \"<'Gold Match' if 90-100, 'Strong Match' if 70-89, 'Good Match' if 50-69, 'Partial Match' if <50>\",\n"
        '  "strengths": [<array of 3-5 specific matching points>],\n'
        '  "gaps": [<array of 2-4 areas for improvement>],\n'
        '  "recommendation": "<specific actionable advice in 1-2 sentences>"\n'
        "}\n\n"
        "Scoring Guidelines:\n"
        "- Skills match: 40 points (exact skill matches get full points)\n"
        "- Experience level: 30 points (entry=0-2 years, mid=2-5 years, senior=5+ years, lead=8+ years)\n"
        "- Location: 15 points (same location or remote = full points)\n"
        "- Education/Background: 15 points\n\n"
        "Return ONLY the JSON object, no additional text."
    )
