"""
Local question bank.

Offline question provider with opening, core and closing pools per session
type. Used directly when no question service is configured and as the
fallback when the service is unavailable.
"""

from __future__ import annotations

import logging

from interview_session_engine.questions.provider import (
    QuestionProvider,
    QuestionStage,
    stage_for,
    validate_request,
)
from interview_session_engine.schemas import (
    MAX_QUESTIONS_PER_SESSION,
    QuestionRequest,
    SessionType,
)

logger = logging.getLogger(__name__)

FALLBACK_QUESTION = (
    "Tell me about a recent accomplishment you are proud of. "
    "What was your role and what did you learn from it?"
)

OPENING_QUESTIONS: dict[SessionType, list[str]] = {
    SessionType.BEHAVIORAL: [
        "To start, could you walk me through your background and what drew you to the {role} role?",
        "Tell me a little about yourself and the kind of work you enjoy most as a {role}.",
    ],
    SessionType.TECHNICAL: [
        "To start, could you give me an overview of your technical background as a {role}?",
        "Walk me through a recent technical project you worked on and your part in it.",
    ],
    SessionType.CASE_STUDY: [
        "Before we dive into the case, how do you usually structure an unfamiliar problem?",
        "To start, tell me about a business problem you analysed end to end as a {role}.",
    ],
}

CLOSING_QUESTIONS: dict[SessionType, list[str]] = {
    SessionType.BEHAVIORAL: [
        "To wrap up, what would your previous teammates say is your biggest strength?",
        "Finally, where do you see yourself growing over the next few years as a {role}?",
    ],
    SessionType.TECHNICAL: [
        "To wrap up, which technical area are you most eager to deepen next, and why?",
        "Finally, what is one engineering practice you would bring to a new team?",
    ],
    SessionType.CASE_STUDY: [
        "To wrap up, how would you present your recommendation to senior leadership?",
        "Finally, looking back at this case, what would you have wanted more data on?",
    ],
}

GENERIC_CORE_QUESTIONS: dict[SessionType, list[str]] = {
    SessionType.BEHAVIORAL: [
        "Tell me about a time you had to meet a tight deadline. How did you manage it?",
        "Describe a situation where you disagreed with a colleague. How did you resolve it?",
        "Tell me about a mistake you made at work and what you did afterwards.",
        "Describe a time you had to learn something new quickly to get a job done.",
        "Tell me about a time you took initiative beyond your usual responsibilities.",
        "Describe a situation where you had to influence someone without authority.",
        "Tell me about a time you received difficult feedback. How did you respond?",
        "Describe a time you had to balance several competing priorities.",
        "Tell me about a project that did not go as planned. What did you learn?",
        "Describe how you have helped a teammate grow or succeed.",
    ],
    SessionType.TECHNICAL: [
        "Which tools and technologies do you rely on most as a {role}, and why?",
        "How do you approach diagnosing a problem you have never seen before?",
        "Explain a complex concept from your field as you would to a new colleague.",
        "How do you make sure the quality of your work holds up over time?",
        "Describe a trade-off you made between speed of delivery and long-term quality.",
        "How would you evaluate whether a new tool is worth adopting on your team?",
        "Walk me through how you would plan a project with unclear requirements.",
        "How do you keep your technical skills current?",
        "Describe the most difficult technical decision you have had to make.",
        "How do you measure whether a solution you built is actually working?",
    ],
    SessionType.CASE_STUDY: [
        "A key metric for our product dropped 15% last month. How would you investigate?",
        "We are considering entering a new market. What would you analyse first?",
        "A major customer is threatening to leave. How would you approach the situation?",
        "We have budget for only one of three initiatives. How would you choose?",
        "Costs in one department doubled in a year. Walk me through your diagnosis.",
        "A competitor launched a cheaper alternative. How should we respond?",
        "How would you estimate the market size for a new {role} tool?",
        "Our onboarding completion rate is low. How would you improve it?",
        "A process that used to take a day now takes a week. What would you look at?",
        "How would you decide whether to build a capability in-house or buy it?",
    ],
}

# Role-specific core pools; roles without an entry use the generic pool.
ROLE_CORE_QUESTIONS: dict[tuple[SessionType, str], list[str]] = {
    (SessionType.BEHAVIORAL, "Software Engineer"): [
        "Tell me about a time when you had to debug a particularly challenging issue. How did you approach it?",
        "Describe a situation where you had to work with a difficult team member. How did you handle it?",
        "Can you share an example of when you had to learn a new technology quickly for a project?",
        "Tell me about a time when you disagreed with a technical decision. How did you handle it?",
        "Describe a project where you had to balance technical debt with new feature development.",
        "Tell me about a time when you had to explain a complex technical concept to a non-technical stakeholder.",
        "Can you describe a situation where you had to make a trade-off between code quality and delivery timeline?",
        "Tell me about a time when you identified and fixed a performance bottleneck in an application.",
        "Describe a situation where you had to refactor legacy code. What was your approach?",
        "Tell me about a time when you had to mentor a junior developer. How did you approach it?",
    ],
    (SessionType.BEHAVIORAL, "Product Manager"): [
        "Tell me about a time when you had to prioritize features with limited resources. How did you decide?",
        "Describe a situation where you had to pivot a product strategy based on user feedback.",
        "Can you share an example of when you had to work with engineering to resolve a technical constraint?",
        "Tell me about a time when you had to communicate bad news to stakeholders. How did you handle it?",
        "Describe a product launch that didn't go as planned. What did you learn?",
        "Tell me about a time when you had to make a data-driven decision with incomplete information.",
        "Can you describe a situation where you had to balance user needs with business requirements?",
        "Tell me about a time when you had to influence without authority to get a project done.",
        "Describe a situation where you had to manage competing priorities from different stakeholders.",
        "Tell me about a time when you had to advocate for the user against internal pressure.",
    ],
    (SessionType.BEHAVIORAL, "Data Scientist"): [
        "Tell me about a time when your initial hypothesis was wrong. How did you pivot?",
        "Describe a situation where you had to explain complex statistical concepts to business stakeholders.",
        "Can you share an example of when you had to work with messy or incomplete data?",
        "Tell me about a time when you had to choose between model accuracy and interpretability.",
        "Describe a project where you had to collaborate closely with engineering to deploy a model.",
        "Tell me about a time when you discovered bias in your data or model. How did you address it?",
        "Can you describe a situation where you had to validate the business impact of your work?",
        "Tell me about a time when you had to learn a new statistical method or tool quickly.",
        "Describe a situation where you had to balance exploration with delivering results on time.",
        "Tell me about a time when you had to communicate uncertainty in your findings to decision-makers.",
    ],
    (SessionType.TECHNICAL, "Software Engineer"): [
        "How would you design a URL shortening service like bit.ly?",
        "Explain the difference between SQL and NoSQL databases. When would you use each?",
        "How would you implement a rate limiter for an API?",
        "What are the trade-offs between microservices and monolithic architecture?",
        "How would you design a chat application that supports millions of users?",
        "Explain how you would optimize a slow database query.",
        "How would you implement caching in a web application?",
        "What are the key considerations when designing a RESTful API?",
        "How would you handle authentication and authorization in a distributed system?",
        "Explain the concept of eventual consistency and when it's acceptable.",
    ],
    (SessionType.TECHNICAL, "Data Scientist"): [
        "How would you approach building a recommendation system for an e-commerce platform?",
        "Explain the bias-variance tradeoff and how it affects model selection.",
        "How would you detect and handle outliers in a dataset?",
        "Walk me through your approach to feature engineering for a machine learning model.",
        "How would you evaluate the performance of a classification model with imbalanced classes?",
        "Explain how you would approach time series forecasting for business metrics.",
        "How would you design an A/B test to measure the impact of a new algorithm?",
        "Walk me through your process for model validation and preventing overfitting.",
        "How would you approach building a real-time fraud detection system?",
        "Explain how you would handle missing data in a machine learning pipeline.",
    ],
    (SessionType.CASE_STUDY, "Software Engineer"): [
        "Our mobile app is experiencing slow load times. Walk me through how you would investigate and solve this.",
        "We need to migrate our monolithic application to microservices. How would you approach this?",
        "Our database is hitting performance limits. What strategies would you consider?",
        "We're seeing intermittent failures in our payment processing system. How would you debug this?",
        "Our API response times have increased by 200% after a recent deployment. How would you investigate?",
        "We need to implement real-time notifications for our web application. What's your approach?",
        "Our application needs to handle 10x more traffic during peak hours. How would you scale it?",
        "We're experiencing data inconsistencies between our services. How would you resolve this?",
        "Our CI/CD pipeline is taking too long and blocking deployments. How would you optimize it?",
        "We need to implement search functionality across multiple data types. What's your approach?",
    ],
    (SessionType.CASE_STUDY, "Product Manager"): [
        "Our user engagement has dropped 20% over the past quarter. How would you investigate and address this?",
        "We want to expand our product to a new geographic market. Walk me through your approach.",
        "Our main competitor just launched a feature that our users are requesting. How do you respond?",
        "We have limited engineering resources and 5 high-priority features. How do you prioritize?",
        "Our customer acquisition cost has increased while retention has decreased. What's your strategy?",
        "We're considering adding a premium tier to our freemium product. How would you approach this?",
        "User feedback indicates our onboarding process is confusing. How would you improve it?",
        "We need to sunset a feature that 30% of users actively use. How do you handle this?",
        "Our mobile app has a 2-star rating due to performance issues. What's your action plan?",
        "We want to integrate AI capabilities into our product. How do you evaluate and prioritize this?",
    ],
}


class QuestionBank(QuestionProvider):
    """
    Deterministic pool-based question provider.

    The first question comes from the opening pool, the question at the cap
    from the closing pool, and everything in between from the core pool.
    Questions already asked in the session are never repeated; once a pool
    is exhausted the generic core pool is tried and then a fixed fallback.
    """

    def __init__(self, max_questions: int = MAX_QUESTIONS_PER_SESSION) -> None:
        self._max_questions = max_questions

    def pool_for(self, request: QuestionRequest, stage: QuestionStage) -> list[str]:
        """Get the formatted question pool for a stage."""
        if stage == QuestionStage.OPENING:
            templates = OPENING_QUESTIONS[request.session_type]
        elif stage == QuestionStage.CLOSING:
            templates = CLOSING_QUESTIONS[request.session_type]
        else:
            templates = ROLE_CORE_QUESTIONS.get(
                (request.session_type, request.role),
                GENERIC_CORE_QUESTIONS[request.session_type],
            )
        return [self._format(template, request) for template in templates]

    async def next_question(self, request: QuestionRequest) -> str:
        validate_request(request)
        stage = stage_for(len(request.history), self._max_questions)
        asked = {item.question for item in request.history}

        candidates = self.pool_for(request, stage)
        if stage == QuestionStage.CORE:
            generic = [
                self._format(template, request)
                for template in GENERIC_CORE_QUESTIONS[request.session_type]
            ]
            candidates = candidates + [q for q in generic if q not in candidates]

        for question in candidates:
            if question not in asked:
                return question

        logger.info(f"Question pools exhausted for {request.session_type.value} ({stage.value}), using fallback")
        return FALLBACK_QUESTION

    @staticmethod
    def _format(template: str, request: QuestionRequest) -> str:
        return template.format(role=request.role)
