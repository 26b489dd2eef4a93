from qa_engine import create_app

app = create_app()
