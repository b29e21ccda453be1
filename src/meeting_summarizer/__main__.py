from meeting_summarizer.serve.server import main

main()
