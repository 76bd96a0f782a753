import pytest

from app.models.models import JobPosting, ResumeProfile
from app.services import matching
from app.utils.exceptions import CompletionError


def make_job(**kw):
    data = dict(id="j", title="Engineer", company="Acme", skills=[], description="", requirements=[])
    data.update(kw)
    return JobPosting(**data)


def make_resume(**kw):
    data = dict(user_id="u", extracted_text="", skills=[], experience=[], keywords=[])
    data.update(kw)
    return ResumeProfile(**data)


class TestSkillOverlap:

    def test_case_insensitive_overlap(self):
        assert matching.skill_overlap_score(["react"], ["React", "Node.js"]) == 20

    def test_no_job_skills(self):
        assert matching.skill_overlap_score(["Python"], []) == 0

    def test_matching_skills_keep_job_spelling(self):
        assert matching.matching_skills(["python", "aws"], ["Python", "Docker", "AWS"]) == ["Python", "AWS"]


class TestExperienceRelevance:

    def test_parsed_and_clamped(self, make_llm):
        assert matching.experience_relevance([], [], "", make_llm("22.5")) == 22.5
        assert matching.experience_relevance([], [], "", make_llm("45")) == 30
        assert matching.experience_relevance([], [], "", make_llm("-3")) == 0

    def test_completion_error_uses_midpoint(self, make_llm):
        assert matching.experience_relevance(["x"], ["y"], "z", make_llm(CompletionError("timeout"))) == 15

    def test_scale_mention_is_not_the_rating(self, make_llm):
        llm = make_llm("On a scale of 0-30, I'd rate this 25.")
        assert matching.experience_relevance(["x"], ["y"], "z", llm) == 25.0

    def test_unparsable_uses_midpoint(self, make_llm):
        assert matching.experience_relevance([], [], "", make_llm("quite relevant")) == 15

    def test_prompt_carries_inputs(self, make_llm):
        llm = make_llm("10")
        matching.experience_relevance(["Built APIs"], ["5 years Go"], "Payments team", llm)
        assert "Built APIs" in llm.prompts[0]
        assert "5 years Go" in llm.prompts[0]
        assert "Payments team" in llm.prompts[0]


class TestKeywords:

    def test_extract_keywords_in_vocabulary_order(self):
        text = "We design cloud APIs in an Agile way"
        assert matching.extract_keywords(text) == ["agile", "api", "cloud", "design"]

    def test_alignment_counts_resume_keywords_and_text(self):
        resume = make_resume(extracted_text="Practised agile delivery", keywords=["Cloud"])
        job_keywords = ["agile", "api", "cloud", "design"]
        matches = matching.keyword_matches(resume, job_keywords)
        assert matches == ["agile", "cloud"]
        assert matching.keyword_alignment_score(matches, job_keywords) == 10

    def test_no_job_keywords(self):
        assert matching.keyword_alignment_score([], []) == 0


class TestLevels:

    @pytest.mark.parametrize("title,level", [
        ("Junior Developer", 1),
        ("Software Engineering Intern", 1),
        ("Backend Engineer", 2),
        ("Senior Engineer", 3),
        ("Tech Lead", 3),
        ("Staff Engineer", 4),
        ("Principal Architect", 4),
        ("Director of Engineering", 5),
        ("VP Engineering", 5),
    ])
    def test_job_level(self, title, level):
        assert matching.infer_job_level(make_job(title=title)) == level

    @pytest.mark.parametrize("text,years", [
        ("Over 5+ years of experience in Go", 5),
        ("EXPERIENCE: 7 years", 7),
        ("- one\n- two\n- three", 3),
        ("\n".join(["- bullet"] * 20), 15),
        ("no signal here", 0),
    ])
    def test_years_of_experience(self, text, years):
        assert matching.extract_years_of_experience(text) == years

    @pytest.mark.parametrize("years,level", [(1, 1), (2, 2), (4, 2), (5, 3), (8, 4), (11, 4), (12, 5)])
    def test_candidate_level(self, years, level):
        resume = make_resume(extracted_text=f"{years} years of experience")
        assert matching.infer_candidate_level(resume) == level

    def test_level_fit_multipliers(self):
        assert matching.level_fit(2, 2) == 1.0
        assert matching.level_fit(3, 2) == 0.7
        assert matching.level_fit(1, 3) == 0.4
        assert matching.level_fit(5, 1) == 0.2

    def test_same_level_scores_full_weight(self):
        resume = make_resume(extracted_text="3 years of experience")
        assert matching.level_fit_score(resume, make_job(title="Software Engineer")) == 10


class TestTotals:

    def test_rounds_half_up(self):
        assert matching.total_score(0.5, 0, 0, 0) == 1
        assert matching.total_score(2 / 3 * 40, 0, 0, 0) == 27

    def test_clamped_to_100(self):
        assert matching.total_score(40, 30, 20, 10) == 100
        assert matching.total_score(60, 30, 20, 10) == 100

    def test_integer_in_range(self):
        for parts in [(0, 0, 0, 0), (13.3, 7.7, 1.1, 4), (40, 30, 20, 10)]:
            score = matching.total_score(*parts)
            assert isinstance(score, int)
            assert 0 <= score <= 100

    def test_skills_only_total(self):
        skills = matching.skill_overlap_score(["Python", "AWS"], ["Python", "AWS", "Docker"])
        assert matching.total_score(skills, 0, 0, 0) == 27


class TestExplanation:

    def test_bands(self):
        assert matching.score_band(71) == "strong"
        assert matching.score_band(70) == "medium"
        assert matching.score_band(41) == "medium"
        assert matching.score_band(40) == "weak"

    def test_default_explanations(self):
        assert matching.default_explanation(80, 3, "Dev") == "Strong match for Dev! You have 3 matching skills and relevant experience."
        assert matching.default_explanation(50, 1, "Dev") == "Moderate fit for Dev. You meet some requirements, with 1 matching skills."
        assert matching.default_explanation(10, 0, "Dev").startswith("This Dev role has different requirements")

    def test_fallback_on_error(self, make_llm, job):
        text = matching.generate_explanation(job, ["Python"], [], 55, make_llm(CompletionError("down")))
        assert text == "Moderate fit for Backend Engineer. You meet some requirements, with 1 matching skills."

    def test_prompt_mentions_band_and_job(self, make_llm, job):
        llm = make_llm("Great fit.")
        assert matching.generate_explanation(job, [], [], 90, llm) == "Great fit."
        assert "strong match" in llm.prompts[0]
        assert "Backend Engineer" in llm.prompts[0]
        assert "None directly listed" in llm.prompts[0]


class TestRelevantExperience:

    def test_first_three_in_order(self, resume, job):
        bullets = matching.find_relevant_experience(resume.experience, job)
        assert bullets == [
            "Built Python services on AWS",
            "Led an agile team of four",
            "Migrated Python jobs to Docker",
        ]

    def test_none_relevant(self, job):
        assert matching.find_relevant_experience(["Painted fences"], job) == []


class TestCalculateMatchScore:

    def test_end_to_end(self, make_llm, resume, job):
        llm = make_llm("20", "Solid backend fit.")
        result = matching.calculate_match_score(resume, job, llm)

        # skills 2/3*40, experience 20, keywords agile/team/cloud/testing -> 3/4*20, level 2 vs 2 -> 10
        assert result.score == 72
        assert result.job_id == "job-1"
        assert result.user_id == "user-1"
        assert result.explanation.matching_skills == ["Python", "AWS"]
        assert result.explanation.keyword_alignment == ["agile", "cloud", "team"]
        assert result.explanation.overall_reason == "Solid backend fit."
        assert len(result.explanation.relevant_experience) == 3

    def test_model_unavailable_still_scores(self, make_llm):
        resume = make_resume(skills=["Python", "AWS"], extracted_text="Python developer", experience=["Built Python services"])
        job = make_job(title="Director of Engineering", skills=["Python", "AWS", "Docker"],
                       description="Build payment systems.", requirements=["Python"])
        llm = make_llm(CompletionError("down"), CompletionError("down"))
        result = matching.calculate_match_score(resume, job, llm)

        # 26.67 skills + 15 midpoint + 0 keywords + 2 level (5 vs 1)
        assert result.score == 44
        assert result.explanation.overall_reason.startswith("Moderate fit for Director of Engineering")

    def test_zero_experience_reply(self, make_llm):
        resume = make_resume(skills=["Python", "AWS"], extracted_text="Python developer")
        job = make_job(title="Director of Engineering", skills=["Python", "AWS", "Docker"],
                       description="Build payment systems.", requirements=["Python"])
        result = matching.calculate_match_score(resume, job, make_llm("0", "ok"))
        assert result.score == 29
