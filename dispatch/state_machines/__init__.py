#Transition rules for the two stateful entities a delivery couples.
#Functions here validate and apply one transition to an in-memory instance;
#persisting it (and doing it inside the right transaction) is the caller's job.
