"""Shared fixtures for the PRD interview agent test-suite."""

from typing import Dict

import pytest

from prd_interview_agent.orchestrator import ConversationOrchestrator
from prd_interview_agent.quality_scorer import QualityScorer
from prd_interview_agent.validation import RuleValidator

# One well-formed answer per planned field; each passes its default rule
# with a validator score above the follow-up threshold.
STRONG_ANSWERS: Dict[str, str] = {
    "productDescription": (
        "FlowDesk is a web platform for product teams at mid-size companies. "
        "It turns customer feedback into a ranked backlog of feature requests. "
        "Teams adopt it because manual triage wastes 6 hours every week and "
        "delays each release by 2 weeks."
    ),
    "problemStatement": (
        "The core problem is that product managers triage feedback by hand. "
        "The impact is severe because each team loses 6 hours per week and the "
        "cost of delayed releases reaches $40,000 per year. Duplicate tickets "
        "also hide urgent customer issues."
    ),
    "targetMarket": (
        "Our target market is product managers and engineering leads at "
        "software companies with 50 to 500 employees. These professionals work "
        "in distributed teams across North America and Europe. They already "
        "pay for tools such as Jira and Slack."
    ),
    "businessObjectives": (
        "Our objective is to reach 1,000 paying teams within 12 months. The "
        "target metric is monthly recurring revenue of $50,000 by the end of "
        "the first year. We also aim to reduce average triage time by 40% for "
        "every customer account."
    ),
    "successMetrics": (
        "Success means 500 weekly active teams after launch. We will track a "
        "40% reduction in triage time, a net promoter score above 45, and churn "
        "below 3% per month. Each metric is reviewed in the monthly product "
        "review meeting."
    ),
    "primaryUsers": (
        "The primary users are product managers who own the roadmap and "
        "engineering leads who plan each sprint. Support teams are secondary "
        "users because they file most of the incoming requests. Each account "
        "averages 12 seats."
    ),
    "userNeeds": (
        "Their biggest problem is the lack of a single view of customer "
        "feedback. Product managers need duplicate requests merged "
        "automatically, a clear ranking by revenue impact, and a weekly digest "
        "that takes less than 10 minutes to review."
    ),
    "coreStories": (
        "As a product manager, I want duplicate requests merged automatically, "
        "so that I can rank the backlog in minutes.\n"
        "As an engineering lead, I want each feature request linked to customer "
        "revenue, so that sprint planning reflects business value."
    ),
    "functionalReqs": (
        "The system must import feedback from email, Intercom and Zendesk. It "
        "must merge duplicate requests with a similarity check and rank each "
        "request by customer revenue. Product managers must be able to export "
        "the ranked backlog to Jira in one click."
    ),
    "nonFunctionalReqs": (
        "The web application must respond within 300 ms for 95% of requests. "
        "It must support 10,000 daily active users with 99.9% monthly uptime. "
        "All customer data is encrypted at rest and in transit, and the "
        "product must meet SOC 2 requirements."
    ),
    "kpis": (
        "Our key metric is weekly active teams, with a target of 500 by month "
        "six. We also measure median triage time per request, which should "
        "fall from 45 minutes to 15 minutes. Net revenue retention should stay "
        "above 110% every quarter."
    ),
    "openQuestions": (
        "Which CRM integrations do pilot customers need first?\n"
        "Should pricing be per seat or per workspace?\n"
        "Who owns data retention policy for deleted feedback?"
    ),
}


@pytest.fixture
def strong_answers() -> Dict[str, str]:
    return dict(STRONG_ANSWERS)


@pytest.fixture
def validator() -> RuleValidator:
    return RuleValidator.with_defaults()


@pytest.fixture
def scorer() -> QualityScorer:
    return QualityScorer()


@pytest.fixture
def orchestrator(validator, scorer) -> ConversationOrchestrator:
    return ConversationOrchestrator(validator, scorer)
