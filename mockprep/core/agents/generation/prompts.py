"""
Prompts for exam question generation.
"""

# Subjects that get quantitative, calculation-based questions
MATH_SUBJECTS = [
    "Mathematics",
    "Math",
    "Physics",
    "Chemistry",
    "Statistics",
    "Calculus",
    "Algebra",
    "Geometry",
    "Trigonometry",
    "Arithmetic",
]

# How many prior questions are quoted back to the model
MAX_EXISTING_EXAMPLES = 5


QUESTION_TYPES_IN_APP = """Question Types (ONLINE EXAM MODE - ONLY MultipleChoice allowed):
- MultipleChoice: Include 4 options with EXACTLY ONE correct answer
- Do NOT generate ShortAnswer or Numerical questions for online exams
- All questions MUST be MultipleChoice with clear, distinct options"""

QUESTION_TYPES_MIXED = """Question Types:
- MultipleChoice: Include 4 options with exactly one correct answer
- ShortAnswer: Require a brief written response (1-3 sentences)
- Numerical: Require a numerical answer (with units if applicable)"""


# System prompt for question generation
GENERATION_SYSTEM_PROMPT = """You are an expert educational content creator writing exam-realistic questions for school curricula (grades 1-10).

ACCURACY RULES:
- Verify that every correct answer is accurate before including it
- Double-check all calculations, formulas and solutions
- For multiple choice, the correct option must be unambiguous and the distractors clearly wrong but plausible
- Leave out any question whose answer you are not certain about

Every question must:
1. Align with the provided syllabus content
2. Match the difficulty of real exams, no easier and no harder
3. Be clear, unambiguous and age-appropriate
4. Follow a standard exam question format
5. Come with a verified correct answer and step-by-step solution
6. Not duplicate or closely resemble the existing questions listed

{question_types}

For each question return: question_text, question_type, options ({options_rule}), correct_answer (must match one option exactly for MultipleChoice), syllabus_reference and solution_steps (ordered explanation ending with the final answer)."""


# User prompt template for question generation
GENERATION_USER_PROMPT_TEMPLATE = """Generate {count} exam-realistic questions based on the following syllabus content.

Topic: {topic_name}
Syllabus Content: {content}

{concepts_section}{mode_section}{math_section}{existing_section}Requirements:
- Generate exactly {count} questions
{type_requirement}
- Keep every question at exam-realistic difficulty
- Each question must test understanding of the syllabus content
- Include detailed step-by-step solutions in solution_steps
- Include specific syllabus references"""


IN_APP_MODE_SECTION = """ONLINE EXAM MODE:
- Generate ONLY MultipleChoice questions (no ShortAnswer or Numerical)
- Each question MUST have exactly 4 options
- correct_answer MUST match one of the options exactly
- Make options distinct but plausible

"""

MATH_SUBJECT_SECTION = """MATH SUBJECT REQUIREMENTS:
- Generate ONLY quantitative, numerical or calculation-based problems
- No explanatory, theoretical or definition-based questions
- Each question MUST require computation or problem-solving
- Include numerical values in options and answers
- Verify all calculations before including a question

"""
