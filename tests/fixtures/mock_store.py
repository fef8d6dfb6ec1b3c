from studysets.persistence.store import StudySetStore, StoreReadError, StoreWriteError


class InMemoryStore(StudySetStore):
    """Dict-backed store with switchable failures."""

    def __init__(self):
        self.study_sets = []
        self.questions = []
        self.categories = {}
        self.subjects = set()
        self.fail_study_set = False
        self.fail_lookup = False
        self.fail_subject_lookup = False
        self.fail_subject = False
        self.fail_category = False
        # 0-based insert attempts that should fail
        self.fail_question_at = set()
        self._question_attempts = 0
        self.category_writes = 0
        self.subject_writes = 0

    def insert_study_set(self, name, ai_generated=True):
        if self.fail_study_set:
            raise StoreWriteError('study_sets insert rejected')
        study_set_id = len(self.study_sets) + 1
        self.study_sets.append({'id': study_set_id, 'name': name, 'ai_generated': ai_generated})
        return str(study_set_id)

    def insert_question(self, study_set_id, question, options_json, answer, category, explanation):
        attempt = self._question_attempts
        self._question_attempts += 1
        if attempt in self.fail_question_at:
            raise StoreWriteError('quiz_questions insert rejected')
        self.questions.append({
            'study_set': study_set_id,
            'question': question,
            'options': options_json,
            'answer': answer,
            'category': category,
            'explanation': explanation,
        })

    def find_category(self, name):
        if self.fail_lookup:
            raise StoreReadError('categories lookup failed')
        row = self.categories.get(name)
        return dict(row) if row else None

    def find_subject(self, subject):
        if self.fail_subject_lookup:
            raise StoreReadError('subjects lookup failed')
        return {'subject': subject} if subject in self.subjects else None

    def upsert_subject(self, subject):
        self.subject_writes += 1
        if self.fail_subject:
            raise StoreWriteError('subjects insert rejected')
        self.subjects.add(subject)

    def upsert_category(self, name, subject):
        self.category_writes += 1
        if self.fail_category:
            raise StoreWriteError('categories insert rejected')
        row = self.categories.get(name)
        if row is None:
            row = {'name': name, 'subject': subject}
            self.categories[name] = row
        elif row['subject'] is None:
            row['subject'] = subject
        return dict(row)
