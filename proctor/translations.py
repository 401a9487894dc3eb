"""Interface messages for the terminal exam runner."""

TRANSLATIONS = {
    "en": {
        "header": "=" * 60,
        "title": "PROCTORED EXAM RUNNER",
        "prompt_language": "Choose your language / Choisissez votre langue (en/fr): ",
        "invalid_language": "Please type 'en' or 'fr'.",
        "ask_enc_pass": "Enter the key or password for {bank}: ",
        "enc_error": "Error: A key or password is required for an encrypted bank.",
        "enc_exit": "Exiting.",
        "bank_loading": "Loading exam bank...",
        "bank_error": "Error: Failed to load the exam bank.\nDetails: {error}",
        "bank_missing": "Error: Bank file '{bank}' not found in {banks_dir}.",
        "bank_success": "Exam bank loaded ({count} exam(s)).",
        "config_error": "Configuration error: {error}",
        "ask_code": "Enter your exam access code: ",
        "not_found": "Exam not found: {error}",
        "lookup_failed": "Could not load the exam right now: {error}",
        "reg_header": "REGISTRATION - {title}",
        "ask_name": "Full name: ",
        "ask_email": "Email address: ",
        "ask_student_id": "Student ID (optional, press Enter to skip): ",
        "reg_validation": "{error}. Please try again.",
        "reg_terminal_submitted": "You have already submitted this exam.",
        "reg_terminal_disqualified": "You have been disqualified from this exam.",
        "reg_terminal_contact": "Please contact your exam administrator.",
        "reg_failed": "Registration failed: {error}. Please try again.",
        "reg_success": "Registered as {name} <{email}>.",
        "reg_resumed": "Welcome back {name}. Your saved answers ({answered}/{total}) have been restored.",
        "instr_header": "EXAMINATION INSTRUCTIONS",
        "instr_subject": "Subject:    {subject}",
        "instr_duration": "Duration:   {minutes} min",
        "instr_questions": "Questions:  {count}",
        "instr_violations": "Violations allowed before disqualification: {max_violations}",
        "instr_rules": (
            "- Stay in this window for the whole exam.\n"
            "- Copying, pasting and keyboard shortcuts are recorded as violations.\n"
            "- The exam is submitted automatically when time runs out."
        ),
        "ask_start": "Type 'start' to begin the examination: ",
        "start_failed": "Unable to start the exam: {error}",
        "exam_started": "Exam started. Time remaining: {remaining}",
        "cmd_help": (
            "Commands:\n"
            "  q<N>            Show question N (e.g. q1)\n"
            "  answer <N> <K>  Select option K for question N\n"
            "  flag <N>        Flag or unflag question N for review\n"
            "  next / prev     Move to the next or previous question\n"
            "  status          Show answered and flagged questions\n"
            "  time            Show remaining time\n"
            "  submit          Submit the exam\n"
            "  exit            Leave and resume later\n"
            "  help            Show this message"
        ),
        "cmd_unknown": "Unknown command: '{command}'. Type 'help' for a list of commands.",
        "cmd_question_header": "Question {number}/{total}{flag}",
        "cmd_flag_marker": "  [FLAGGED]",
        "cmd_answer_usage": "Usage: answer <question> <option>  (e.g. answer 2 3)",
        "cmd_answer_saved": "Answer saved: question {number} -> option {option}",
        "cmd_flag_usage": "Usage: flag <question>",
        "cmd_flagged": "Question {number} flagged for review.",
        "cmd_unflagged": "Question {number} unflagged.",
        "cmd_not_number": "'{value}' is not a number.",
        "cmd_error": "{error}",
        "cmd_time": "Time remaining: {remaining}",
        "cmd_status_header": "Status for {student}:",
        "cmd_status_line": "  Q{number}: {state}{flag}",
        "cmd_status_answered": "answered (option {option})",
        "cmd_status_missing": "not answered",
        "cmd_status_total": "Answered {answered}/{total}, flagged {flagged}, violations {violations}/{max_violations}",
        "submit_summary": "You have answered {answered} of {total} questions.",
        "submit_unanswered": "{unanswered} question(s) are still unanswered.",
        "submit_confirm": "Submit the exam now? (y/n): ",
        "submit_cancel": "Submission cancelled. Continue your exam.",
        "submitted": "Exam submitted successfully.",
        "auto_submitted": "Time expired. Your exam has been automatically submitted.",
        "disqualified": "You have been disqualified due to too many violations.",
        "finalize_failed": "Your exam could NOT be saved: {error}",
        "finalize_retry": "Retry saving now? (y/n): ",
        "finalize_abort": "Your exam has NOT been recorded. Do not close this window; contact your supervisor.",
        "result_hidden": "Your answers have been recorded. Results will be published by your institution.",
        "results_file": "Results saved to: {path}",
        "exit_message": "Your progress has been saved. Register again with the same email to resume.",
        "input_closed": "Input closed. Leaving the exam; your progress is saved.",
        "exam_over": "The exam is over.",
        "violation_count": "Violation {count}/{max_violations} recorded.",
        "violation_tab_switch": "Leaving the exam tab is not allowed",
        "violation_fullscreen_exit": "You must remain in fullscreen mode",
        "violation_right_click": "Right-clicking is disabled during the exam",
        "violation_copy_attempt": "Copying is not allowed during the exam",
        "violation_cut_attempt": "Cutting is not allowed during the exam",
        "violation_paste_attempt": "Pasting is not allowed during the exam",
        "violation_keyboard_shortcut": "Keyboard shortcuts are disabled during the exam",
        "violation_window_blur": "Please keep focus on the exam window",
    },
    "fr": {
        "header": "=" * 60,
        "title": "EXAMEN SURVEILLÉ",
        "prompt_language": "Choose your language / Choisissez votre langue (en/fr): ",
        "invalid_language": "Veuillez taper 'en' ou 'fr'.",
        "ask_enc_pass": "Entrez la clé ou le mot de passe pour {bank} : ",
        "enc_error": "Erreur : une clé ou un mot de passe est requis pour une banque chiffrée.",
        "enc_exit": "Sortie.",
        "bank_loading": "Chargement de la banque d'examens...",
        "bank_error": "Erreur : impossible de charger la banque d'examens.\nDétails : {error}",
        "bank_missing": "Erreur : fichier '{bank}' introuvable dans {banks_dir}.",
        "bank_success": "Banque d'examens chargée ({count} examen(s)).",
        "config_error": "Erreur de configuration : {error}",
        "ask_code": "Entrez votre code d'accès : ",
        "not_found": "Examen introuvable : {error}",
        "lookup_failed": "Impossible de charger l'examen pour le moment : {error}",
        "reg_header": "INSCRIPTION - {title}",
        "ask_name": "Nom complet : ",
        "ask_email": "Adresse e-mail : ",
        "ask_student_id": "Numéro d'étudiant (facultatif, Entrée pour passer) : ",
        "reg_validation": "{error}. Veuillez réessayer.",
        "reg_terminal_submitted": "Vous avez déjà soumis cet examen.",
        "reg_terminal_disqualified": "Vous avez été disqualifié de cet examen.",
        "reg_terminal_contact": "Veuillez contacter votre administrateur d'examen.",
        "reg_failed": "Échec de l'inscription : {error}. Veuillez réessayer.",
        "reg_success": "Inscrit en tant que {name} <{email}>.",
        "reg_resumed": "Bon retour {name}. Vos réponses enregistrées ({answered}/{total}) ont été restaurées.",
        "instr_header": "CONSIGNES DE L'EXAMEN",
        "instr_subject": "Matière :   {subject}",
        "instr_duration": "Durée :     {minutes} min",
        "instr_questions": "Questions : {count}",
        "instr_violations": "Infractions tolérées avant disqualification : {max_violations}",
        "instr_rules": (
            "- Restez dans cette fenêtre pendant tout l'examen.\n"
            "- Copier, coller et les raccourcis clavier sont enregistrés comme infractions.\n"
            "- L'examen est soumis automatiquement à la fin du temps imparti."
        ),
        "ask_start": "Tapez 'start' pour commencer l'examen : ",
        "start_failed": "Impossible de démarrer l'examen : {error}",
        "exam_started": "Examen commencé. Temps restant : {remaining}",
        "cmd_help": (
            "Commandes :\n"
            "  q<N>            Afficher la question N (ex. q1)\n"
            "  answer <N> <K>  Choisir l'option K pour la question N\n"
            "  flag <N>        Marquer ou démarquer la question N\n"
            "  next / prev     Question suivante ou précédente\n"
            "  status          Voir les questions répondues et marquées\n"
            "  time            Voir le temps restant\n"
            "  submit          Soumettre l'examen\n"
            "  exit            Quitter et reprendre plus tard\n"
            "  help            Afficher ce message"
        ),
        "cmd_unknown": "Commande inconnue : '{command}'. Tapez 'help' pour la liste des commandes.",
        "cmd_question_header": "Question {number}/{total}{flag}",
        "cmd_flag_marker": "  [MARQUÉE]",
        "cmd_answer_usage": "Utilisation : answer <question> <option>  (ex. answer 2 3)",
        "cmd_answer_saved": "Réponse enregistrée : question {number} -> option {option}",
        "cmd_flag_usage": "Utilisation : flag <question>",
        "cmd_flagged": "Question {number} marquée pour révision.",
        "cmd_unflagged": "Question {number} démarquée.",
        "cmd_not_number": "'{value}' n'est pas un nombre.",
        "cmd_error": "{error}",
        "cmd_time": "Temps restant : {remaining}",
        "cmd_status_header": "État pour {student} :",
        "cmd_status_line": "  Q{number} : {state}{flag}",
        "cmd_status_answered": "répondue (option {option})",
        "cmd_status_missing": "sans réponse",
        "cmd_status_total": "Répondues {answered}/{total}, marquées {flagged}, infractions {violations}/{max_violations}",
        "submit_summary": "Vous avez répondu à {answered} questions sur {total}.",
        "submit_unanswered": "{unanswered} question(s) sans réponse.",
        "submit_confirm": "Soumettre l'examen maintenant ? (y/n) : ",
        "submit_cancel": "Soumission annulée. Continuez votre examen.",
        "submitted": "Examen soumis avec succès.",
        "auto_submitted": "Temps écoulé. Votre examen a été soumis automatiquement.",
        "disqualified": "Vous avez été disqualifié pour trop d'infractions.",
        "finalize_failed": "Votre examen n'a PAS pu être enregistré : {error}",
        "finalize_retry": "Réessayer l'enregistrement ? (y/n) : ",
        "finalize_abort": "Votre examen n'est PAS enregistré. Ne fermez pas cette fenêtre ; contactez votre surveillant.",
        "result_hidden": "Vos réponses sont enregistrées. Les résultats seront publiés par votre établissement.",
        "results_file": "Résultats enregistrés dans : {path}",
        "exit_message": "Votre progression est enregistrée. Inscrivez-vous avec le même e-mail pour reprendre.",
        "input_closed": "Entrée fermée. Sortie de l'examen ; votre progression est enregistrée.",
        "exam_over": "L'examen est terminé.",
        "violation_count": "Infraction {count}/{max_violations} enregistrée.",
        "violation_tab_switch": "Quitter l'onglet de l'examen est interdit",
        "violation_fullscreen_exit": "Vous devez rester en plein écran",
        "violation_right_click": "Le clic droit est désactivé pendant l'examen",
        "violation_copy_attempt": "Copier est interdit pendant l'examen",
        "violation_cut_attempt": "Couper est interdit pendant l'examen",
        "violation_paste_attempt": "Coller est interdit pendant l'examen",
        "violation_keyboard_shortcut": "Les raccourcis clavier sont désactivés pendant l'examen",
        "violation_window_blur": "Gardez le focus sur la fenêtre de l'examen",
    },
}
