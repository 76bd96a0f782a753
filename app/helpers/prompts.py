INTENT_PROMPT = """Analyze the user's message and determine their intent.

User message: "{message}"

Classify into ONE of these intents:
1. search_jobs - User wants to find/search for jobs (e.g., "show me frontend jobs", "find remote positions")
2. update_filters - User wants to change active filters (e.g., "show only remote", "filter by high match", "clear filters")
3. help - User has questions about the platform (e.g., "how does matching work?", "what features do you have?")
4. general_chat - General conversation or unclear intent

Extract parameters based on intent:
- For search_jobs: {{role, skills, location, remote}}
- For update_filters: {{workMode, matchScore, jobType, datePosted, skills, location, role, action}}

Respond ONLY with valid JSON in this format:
{{
  "type": "intent_type",
  "parameters": {{}},
  "confidence": 0.0-1.0
}}
"""

CHAT_PROMPT = """You are a helpful AI assistant for a job tracking platform.

User: {message}

Provide a brief, friendly response. If the user's intent is unclear, ask clarifying questions or suggest what you can help with.
Keep responses under 3 sentences.
"""

EXPERIENCE_PROMPT = """You are an expert recruiter analyzing candidate experience fit.

Job Requirements:
{requirements}

Job Description:
{description}

Candidate Experience:
{experience}

Rate the experience relevance on a scale of 0-30 (where 30 is perfect match).
Consider:
- Years of relevant experience
- Matching technologies/domains
- Similar project types
- Comparable company sizes/industries

Return ONLY a number between 0 and 30.
"""

EXPLANATION_PROMPT = """You are a career advisor explaining job match quality.

Job Title: {job_title}
Company: {company}
Match Score: {score}/100

Matching Skills: {matching_skills}
Keyword Matches: {keywords}

Write a concise 2-3 sentence explanation of why this is a {level} match.
Focus on strengths and potential fit. Be encouraging but honest.

Strong matches should emphasize strong alignment.
Medium matches should note partial fit and growth opportunities.
Weak matches should be diplomatic about gaps.
"""

# Help topics, checked in this order against the user's message
HELP_TOPICS = [
    (("match", "score"), """Job matching uses AI to analyze your resume against each job posting. We score jobs 0-100 based on:
• Skills overlap (40%)
• Experience relevance (30%)
• Keyword alignment (20%)
• Job level fit (10%)

Green badges (>70) are strong matches, yellow (40-70) are moderate, and gray (<40) are lower fits."""),
    (("filter",), """You can filter jobs by role, skills, date posted, job type, work mode, location, and match score. Just tell me what you're looking for and I'll update the filters for you! Try "show only remote jobs" or "high match scores only"."""),
    (("apply", "track"), """When you click Apply, you'll be directed to the job posting. When you return, we'll ask if you applied. Your applications are tracked with statuses: Applied → Interview → Offer/Rejected. View your timeline in the Applications dashboard."""),
    (("resume",), """Upload your resume (PDF, DOCX or TXT) to enable AI matching. We extract your skills and experience to score each job. You can replace your resume anytime, and all match scores will update automatically."""),
]

HELP_GENERIC = """I'm your AI job search assistant! I can:
• Search for jobs using natural language
• Update filters (e.g., "show remote only", "high matches")
• Answer questions about features
• Help you find the best opportunities

What would you like to do?"""
